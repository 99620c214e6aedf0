# -*- coding: utf-8 -*-
"""
Project Calculator

Parallel calculation of every activity in a project.

Features:
- Parallel execution (thread pool, worker count from config)
- Oracle failure isolation: an OracleError for one activity becomes an
  OracleFailure entry and never aborts its siblings
- ValidationError / FactorNotFound / UnknownGasType propagate to the caller
- Results returned in input order with an aggregate CO2e total
- Progress callback

Author: GreenLang Platform Team
Date: March 2026
Status: Production Ready
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal
from typing import Callable, Dict, Optional, Sequence

from ghg_engine.config import get_config
from ghg_engine.exceptions import OracleError
from ghg_engine.metrics import observe_duration, record_calculation, set_active_calculations
from ghg_engine.models import (
    ActivityOutcome,
    CalculationRequest,
    OracleFailure,
    ProjectResult,
)
from ghg_engine.standards import StandardCalculator

logger = logging.getLogger(__name__)


class ProjectCalculator:
    """
    Runs a StandardCalculator over many activities.

    Attributes:
        calculator: Per-standard pipeline applied to each request.
        max_workers: Thread pool size.
        timeout: Oracle timeout passed to each calculation.
    """

    def __init__(
        self,
        calculator: StandardCalculator,
        max_workers: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.calculator = calculator
        self.max_workers = max_workers or get_config().max_workers
        self.timeout = timeout

    def calculate_all(
        self,
        requests: Sequence[CalculationRequest],
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> ProjectResult:
        """
        Calculate every request.

        Args:
            requests: Activities of one project.
            progress_callback: Optional callback(completed, total).

        Returns:
            ProjectResult with one outcome per request, in input order.

        Raises:
            CalculationError: The first non-oracle error raised by any
                activity (remaining activities still run to completion).
        """
        start = time.monotonic()
        total = len(requests)
        outcomes: Dict[int, ActivityOutcome] = {}
        errors: Dict[int, Exception] = {}
        completed = 0

        logger.info(
            "Starting project calculation: %d activities, %d workers",
            total, self.max_workers,
        )
        set_active_calculations(total)

        try:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="ghg-project",
            ) as executor:
                future_to_index = {
                    executor.submit(self._calculate_one, index, request): index
                    for index, request in enumerate(requests)
                }
                for future in as_completed(future_to_index):
                    index = future_to_index[future]
                    try:
                        outcomes[index] = future.result()
                    except Exception as exc:
                        errors[index] = exc
                    completed += 1
                    if progress_callback:
                        progress_callback(completed, total)
        finally:
            set_active_calculations(0)

        if errors:
            first = min(errors)
            logger.error(
                "Project calculation aborted: activity %d raised %s",
                first, type(errors[first]).__name__,
            )
            raise errors[first]

        ordered = [outcomes[i] for i in range(total)]
        co2e = sum(
            (o.result.co2_equivalent for o in ordered if o.result is not None),
            Decimal("0"),
        )
        failed = sum(1 for o in ordered if o.failure is not None)
        duration = time.monotonic() - start
        observe_duration("project_calculation", duration)

        logger.info(
            "Project calculation complete: %d activities, %d oracle failures, "
            "%s kg CO2e in %.2fs",
            total, failed, co2e, duration,
        )
        return ProjectResult(
            outcomes=ordered,
            total_co2_equivalent=co2e,
            failed_count=failed,
            duration_seconds=duration,
        )

    def _calculate_one(self, index: int, request: CalculationRequest) -> ActivityOutcome:
        try:
            result = self.calculator.calculate(request, timeout=self.timeout)
        except OracleError as exc:
            logger.warning("Activity %d oracle failure: %s", index, exc)
            record_calculation(self.calculator.standard.value, "oracle", "failed")
            return ActivityOutcome(
                index=index,
                failure=OracleFailure(
                    index=index,
                    error_code=exc.error_code,
                    message=exc.message,
                    retryable=exc.retryable,
                ),
            )
        return ActivityOutcome(index=index, result=result)


__all__ = ["ProjectCalculator"]
