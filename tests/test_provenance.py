"""Tests for provenance hashing, the audit trail and metrics recording."""

import json
from decimal import Decimal

from prometheus_client import REGISTRY

from ghg_engine.audit_trail import StepRecorder
from ghg_engine.config import GHGEngineConfig, set_config
from ghg_engine.metrics import MetricsCollector, record_calculation, record_lca_evaluation
from ghg_engine.provenance import ProvenanceChain, ProvenanceTracker, compute_result_hash


class TestComputeResultHash:

    def test_key_order_does_not_matter(self):
        assert compute_result_hash({"a": 1, "b": 2}) == compute_result_hash({"b": 2, "a": 1})

    def test_decimal_text_takes_part(self):
        assert compute_result_hash({"v": Decimal("1.0")}) != compute_result_hash({"v": Decimal("1.00")})

    def test_is_sha256_hex(self):
        digest = compute_result_hash({"v": 1})

        assert len(digest) == 64
        int(digest, 16)


class TestProvenanceChain:

    def test_chain_links(self):
        chain = ProvenanceChain()
        first = chain.add_entry("calculation", "reconcile", "f-1", data={"co2e": "228"})
        second = chain.add_entry("calculation", "reconcile", "f-2", data={"co2e": "1"})

        assert first.parent_hash == chain.genesis_hash
        assert second.parent_hash == first.hash_value
        assert chain.last_hash == second.hash_value
        assert chain.verify_chain()

    def test_tampering_is_detected(self):
        chain = ProvenanceChain()
        chain.add_entry("calculation", "reconcile", "f-1", data={"co2e": "228"})
        chain.add_entry("calculation", "reconcile", "f-2", data={"co2e": "1"})

        chain.get_entries()[0].metadata["data_hash"] = compute_result_hash({"co2e": "999"})

        assert not chain.verify_chain()

    def test_broken_link_is_detected(self):
        chain = ProvenanceChain()
        chain.add_entry("a", "x", "1")
        chain.add_entry("a", "x", "2")

        chain.get_entries()[1].parent_hash = "0" * 64

        assert not chain.verify_chain()

    def test_export_and_clear(self):
        chain = ProvenanceChain(genesis_hash="TEST")
        chain.add_entry("lca", "evaluate", "corn_ethanol", metadata={"nodes": 3})

        exported = json.loads(chain.export_json())
        assert exported[0]["metadata"]["nodes"] == 3
        assert "data_hash" in exported[0]["metadata"]

        chain.clear()
        assert len(chain) == 0
        assert chain.last_hash == chain.genesis_hash


class TestProvenanceTracker:

    def test_record_and_query(self, tracker):
        tracker.record("calculation", "reconcile", "f-1", data={"x": 1})
        tracker.record("oracle_selection", "select", "f-1")

        assert tracker.entry_count == 2
        assert len(tracker.get_entries(entity_type="calculation")) == 1
        assert len(tracker.get_entries_for_entity("oracle_selection", "f-1")) == 1
        assert tracker.verify_chain()

    def test_disabled_tracker_stores_nothing(self):
        tracker = ProvenanceTracker(enabled=False)

        assert tracker.record("calculation", "reconcile", "f-1") is None
        assert tracker.entry_count == 0

    def test_clear(self, tracker):
        tracker.record("calculation", "reconcile", "f-1")

        tracker.clear()

        assert tracker.entry_count == 0
        assert tracker.get_entries_for_entity("calculation", "f-1") == []


class TestStepRecorder:

    def test_steps_are_numbered_and_textual(self):
        steps = StepRecorder()

        out = steps.add("Activity x factor", "multiply", {"q": Decimal("2"), "f": Decimal("0.5")}, Decimal("1.0"))

        assert out == Decimal("1.0")
        assert len(steps) == 1
        assert steps.to_list() == [{
            "step_number": 1,
            "description": "Activity x factor",
            "operation": "multiply",
            "inputs": {"q": "2", "f": "0.5"},
            "output": "1.0",
        }]

    def test_markdown(self):
        steps = StepRecorder()
        steps.add("Sum", "sum", {}, Decimal("3"))

        assert "| 1 | Sum | sum | 3 |" in steps.to_markdown()


class TestMetrics:

    LABELS = {"standard": "TEST", "method": "UNIT", "status": "completed"}

    def _calculations(self):
        return REGISTRY.get_sample_value("gl_ghg_calculations_total", self.LABELS) or 0.0

    def test_disabled_metrics_are_not_recorded(self):
        before = self._calculations()

        record_calculation("TEST", "UNIT", "completed")

        assert self._calculations() == before

    def test_enabled_metrics_are_recorded(self):
        set_config(GHGEngineConfig(enable_metrics=True))
        before = self._calculations()

        record_calculation("TEST", "UNIT", "completed")
        MetricsCollector.record_calculation("TEST", "UNIT", "completed")

        assert self._calculations() == before + 2

    def test_lca_counter(self):
        set_config(GHGEngineConfig(enable_metrics=True))
        labels = {"pathway": "unit_test"}
        before = REGISTRY.get_sample_value("gl_ghg_lca_evaluations_total", labels) or 0.0

        record_lca_evaluation("unit_test")

        assert REGISTRY.get_sample_value("gl_ghg_lca_evaluations_total", labels) == before + 1
