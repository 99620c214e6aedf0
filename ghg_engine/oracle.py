# -*- coding: utf-8 -*-
"""
Factor-Selection Oracle Adapter

Asks an external language model to choose one emission factor (and gas
type) out of an enumerated candidate list, and turns its text reply into
a provisional ``OracleSelection``. The adapter never computes emissions:
every number it returns is re-derived by the Reconciliation Calculator.

Failure modes:
    OracleEmptyResponse   - empty or whitespace-only reply
    OracleParseError      - no JSON object, invalid JSON, missing keys or
                            non-numeric values (terminal)
    OracleFactorNotFound  - chosen identifier and name match no candidate
    OracleTimeout         - the call exceeded its timeout (retryable)

Example:
    >>> from ghg_engine.oracle import OracleAdapter
    >>> adapter = OracleAdapter(client=my_client)
    >>> selection = adapter.select(activity, candidates, GWPTable.ar5())
    >>> factor = adapter.resolve_factor(selection, candidates)

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Protocol, Sequence, Union, runtime_checkable

import anthropic

from ghg_engine.config import get_config
from ghg_engine.exceptions import (
    FactorNotFound,
    OracleEmptyResponse,
    OracleError,
    OracleFactorNotFound,
    OracleParseError,
    OracleTimeout,
)
from ghg_engine.gwp import GWPTable
from ghg_engine.metrics import observe_duration, record_oracle_call
from ghg_engine.models import (
    ActivityMeasurement,
    EmissionFactor,
    OracleSelection,
    Standard,
)

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)

#: Keys the oracle must return, in prompt order.
RESPONSE_SCHEMA: Dict[str, str] = {
    "chosenFactorIdentifier": "exact ID from the candidate list",
    "chosenFactorName": "exact name from the candidate list",
    "gasType": "primary gas of the chosen factor (CO2, CH4, N2O, ...)",
    "emissionValue": "<number, kg of the primary gas>",
    "co2Equivalent": "<number, kg CO2e>",
    "unit": "unit of the chosen factor",
    "co2Emissions": "<number, kg CO2>",
    "ch4Emissions": "<number, kg CH4>",
    "n2oEmissions": "<number, kg N2O>",
    "calculationFormula": "Quantity x Factor x GWP = ...",
    "explanation": "short explanation of the calculation",
    "reasoning": "why this factor was chosen",
}

_PER_GAS_KEYS = {"co2Emissions": "CO2", "ch4Emissions": "CH4", "n2oEmissions": "N2O"}


# ---------------------------------------------------------------------------
# Oracle clients
# ---------------------------------------------------------------------------


@runtime_checkable
class OracleClient(Protocol):
    """Anything that turns one prompt into one text reply."""

    def complete(self, prompt: str) -> str:
        ...


class AnthropicOracleClient:
    """OracleClient backed by the Anthropic Messages API.

    The SDK client is created on first use so that constructing the
    adapter does not require an API key.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        client: Optional[anthropic.Anthropic] = None,
    ) -> None:
        cfg = get_config()
        self.model = model or cfg.oracle_model
        self.max_tokens = max_tokens or cfg.oracle_max_tokens
        self._api_key = api_key
        self._client = client

    def _get_client(self) -> anthropic.Anthropic:
        if self._client is None:
            self._client = anthropic.Anthropic(
                api_key=self._api_key or os.environ.get("ANTHROPIC_API_KEY")
            )
        return self._client

    def complete(self, prompt: str) -> str:
        try:
            response = self._get_client().messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APITimeoutError as exc:
            raise OracleTimeout(
                "Anthropic request timed out",
                context={"model": self.model},
            ) from exc
        except anthropic.APIError as exc:
            raise OracleError(
                f"Anthropic request failed: {exc}",
                context={"model": self.model},
            ) from exc

        return "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )

    def __repr__(self) -> str:
        return f"AnthropicOracleClient(model={self.model!r}, max_tokens={self.max_tokens})"


# ---------------------------------------------------------------------------
# Reply parsing
# ---------------------------------------------------------------------------


def extract_json_object(text: str) -> str:
    """Return the first balanced ``{...}`` object in ``text``.

    Braces inside JSON string literals are ignored.

    Raises:
        OracleParseError: If no complete object is present.
    """
    cleaned = _CODE_FENCE.sub("", text)
    start = cleaned.find("{")
    if start < 0:
        raise OracleParseError("Oracle reply contains no JSON object", raw_reply=text)

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(cleaned)):
        char = cleaned[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return cleaned[start:pos + 1]

    raise OracleParseError("Oracle reply contains an unterminated JSON object", raw_reply=text)


def _to_decimal(key: str, value: Any, raw: str) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise OracleParseError(f"Field '{key}' is not numeric", raw_reply=raw)
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise OracleParseError(f"Field '{key}' is not numeric: {value!r}", raw_reply=raw) from exc
    if not number.is_finite():
        raise OracleParseError(f"Field '{key}' is not finite", raw_reply=raw)
    return number


def _optional_text(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_reply(reply: Optional[str]) -> OracleSelection:
    """Parse an oracle reply into a provisional OracleSelection.

    Raises:
        OracleEmptyResponse: Empty or whitespace-only reply.
        OracleParseError: Malformed reply.
    """
    if reply is None or not reply.strip():
        raise OracleEmptyResponse("Oracle returned an empty reply")

    try:
        payload = json.loads(extract_json_object(reply), parse_float=Decimal)
    except json.JSONDecodeError as exc:
        raise OracleParseError(f"Oracle reply is not valid JSON: {exc.msg}", raw_reply=reply) from exc
    if not isinstance(payload, dict):
        raise OracleParseError("Oracle reply is not a JSON object", raw_reply=reply)

    missing = [k for k in ("emissionValue", "co2Equivalent") if k not in payload]
    identifier = _optional_text(payload, "chosenFactorIdentifier")
    name = _optional_text(payload, "chosenFactorName")
    if identifier is None and name is None:
        missing.append("chosenFactorIdentifier")
    if missing:
        raise OracleParseError(
            f"Oracle reply is missing required keys: {', '.join(missing)}",
            context={"missing": missing},
            raw_reply=reply,
        )

    per_gas: Dict[str, Decimal] = {}
    for key, gas in _PER_GAS_KEYS.items():
        if payload.get(key) is not None:
            per_gas[gas] = _to_decimal(key, payload[key], reply)

    return OracleSelection(
        chosen_factor_id=identifier,
        chosen_factor_name=name,
        gas_type=_optional_text(payload, "gasType"),
        emission_value=_to_decimal("emissionValue", payload["emissionValue"], reply),
        co2_equivalent=_to_decimal("co2Equivalent", payload["co2Equivalent"], reply),
        per_gas_emissions=per_gas,
        unit=_optional_text(payload, "unit"),
        formula=str(payload.get("calculationFormula") or ""),
        explanation=str(payload.get("explanation") or ""),
        reasoning=str(payload.get("reasoning") or ""),
    )


def resolve_factor(
    selection: OracleSelection,
    candidates: Sequence[EmissionFactor],
) -> EmissionFactor:
    """Map a selection back to one of the candidates.

    Identifier match first, then exact (case-insensitive) factor name.

    Raises:
        OracleFactorNotFound: Neither identifier nor name matches.
    """
    if selection.chosen_factor_id:
        for factor in candidates:
            if factor.id == selection.chosen_factor_id:
                return factor
    if selection.chosen_factor_name:
        wanted = selection.chosen_factor_name.strip().casefold()
        for factor in candidates:
            if factor.name.strip().casefold() == wanted:
                logger.info(
                    "Oracle identifier %r not among candidates, matched by name %r",
                    selection.chosen_factor_id, factor.name,
                )
                return factor
    raise OracleFactorNotFound(
        "Oracle chose a factor that is not among the candidates",
        identifier=selection.chosen_factor_id,
        name=selection.chosen_factor_name,
    )


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class OracleAdapter:
    """Prompts the oracle once per activity and parses its selection.

    Attributes:
        client: OracleClient used for the call.
        standard: Label used in prompts and metrics.
        timeout: Default timeout in seconds.
        max_candidates: Cap on candidates listed in one prompt.
    """

    def __init__(
        self,
        client: Optional[OracleClient] = None,
        standard: Union[Standard, str] = Standard.DEFRA,
        timeout: Optional[float] = None,
        max_candidates: Optional[int] = None,
    ) -> None:
        cfg = get_config()
        self.client: OracleClient = client if client is not None else AnthropicOracleClient()
        self.standard = Standard(standard)
        self.timeout = timeout if timeout is not None else cfg.oracle_timeout_seconds
        self.max_candidates = max_candidates or cfg.oracle_max_candidates

    # ------------------------------------------------------------------
    # Prompt
    # ------------------------------------------------------------------

    def build_prompt(
        self,
        activity: ActivityMeasurement,
        candidates: Sequence[EmissionFactor],
        gwp_table: GWPTable,
    ) -> str:
        """Deterministic prompt: same inputs always yield the same text."""
        lines: List[str] = [
            f"You are selecting a {self.standard.value} emission factor for a "
            "greenhouse-gas calculation.",
            "",
            "## ACTIVITY",
            f"- Activity name: {activity.activity_name or 'Not specified'}",
            f"- Quantity: {activity.quantity}",
            f"- Unit: {activity.unit or 'Not specified'}",
            f"- Category: {activity.category or 'Not specified'}",
            f"- Standard year: {activity.standard_year or 'Not specified'}",
            "",
            f"## CANDIDATE EMISSION FACTORS ({len(candidates)})",
        ]
        for idx, factor in enumerate(candidates, start=1):
            lines.append(f"{idx}. ID: {factor.id}")
            lines.append(f"   - Name: {factor.name}")
            lines.append(f"   - Gas type: {factor.gas_type}")
            lines.append(f"   - Unit: {factor.unit}")
            for gas, value in factor.per_gas_factors.items():
                lines.append(f"   - {gas} factor: {value} kg {gas}/{factor.unit}")
            if factor.co2e_factor is not None:
                lines.append(f"   - CO2e factor: {factor.co2e_factor} kg CO2e/{factor.unit}")
            if factor.heating_value is not None:
                lines.append(
                    f"   - Heating value: {factor.heating_value} {factor.heating_value_unit or ''}".rstrip()
                )
            if factor.tier is not None:
                lines.append(f"   - Tier: {factor.tier.value}")
            for label, value in (
                ("Level 1", factor.level1),
                ("Level 2", factor.level2),
                ("Level 3", factor.level3),
            ):
                if value:
                    lines.append(f"   - {label}: {value}")
            if factor.applicable_categories:
                lines.append(f"   - Categories: {', '.join(factor.applicable_categories)}")

        lines.append("")
        lines.append(f"## GWP VALUES ({gwp_table.assessment_report})")
        for gas, value in gwp_table.as_dict().items():
            lines.append(f"- {gas}: {value}")

        lines.extend([
            "",
            "## OUTPUT FORMAT",
            "Return a single JSON object with exactly these keys:",
            json.dumps(RESPONSE_SCHEMA, indent=2),
            "",
            "JSON only, no prose. Numbers must be JSON numbers, not strings.",
        ])
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(
        self,
        activity: ActivityMeasurement,
        candidates: Sequence[EmissionFactor],
        gwp_table: GWPTable,
        timeout: Optional[float] = None,
    ) -> OracleSelection:
        """Invoke the oracle once and parse its choice.

        Raises:
            FactorNotFound: No candidates to choose from.
            OracleError: Any oracle failure (see module docstring).
        """
        if not candidates:
            raise FactorNotFound(
                "No candidate emission factors to offer the oracle",
                standard=self.standard.value,
                category=activity.category,
                unit=activity.unit,
                year=activity.standard_year,
            )
        shortlist = list(candidates)[: self.max_candidates]
        prompt = self.build_prompt(activity, shortlist, gwp_table)
        wait = timeout if timeout is not None else self.timeout

        start = time.monotonic()
        status = "completed"
        try:
            reply = self._call(prompt, wait)
            return parse_reply(reply)
        except OracleTimeout:
            status = "timeout"
            raise
        except OracleEmptyResponse:
            status = "empty"
            raise
        except OracleParseError:
            status = "parse_error"
            raise
        except OracleError:
            status = "failed"
            raise
        finally:
            record_oracle_call(self.standard.value, status)
            observe_duration("oracle_select", time.monotonic() - start)

    def _call(self, prompt: str, timeout: float) -> str:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ghg-oracle")
        future = executor.submit(self.client.complete, prompt)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError as exc:
            future.cancel()
            logger.warning(
                "Oracle call exceeded %.1fs timeout (standard=%s)",
                timeout, self.standard.value,
            )
            raise OracleTimeout(
                f"Oracle did not reply within {timeout}s",
                timeout_seconds=timeout,
            ) from exc
        finally:
            executor.shutdown(wait=False)

    def resolve_factor(
        self,
        selection: OracleSelection,
        candidates: Sequence[EmissionFactor],
    ) -> EmissionFactor:
        return resolve_factor(selection, candidates)

    def __repr__(self) -> str:
        return (
            f"OracleAdapter(standard={self.standard.value!r}, "
            f"timeout={self.timeout}, client={self.client!r})"
        )


__all__ = [
    "RESPONSE_SCHEMA",
    "OracleClient",
    "AnthropicOracleClient",
    "OracleAdapter",
    "extract_json_object",
    "parse_reply",
    "resolve_factor",
]
