"""Tests for the Rich renderer — output smoke tests against a recording console."""

from __future__ import annotations

from rich.console import Console

from provenant.core.verifier import Verifier
from provenant.monitor.projection import project
from provenant.monitor.renderer import ProgressRenderer, format_timestamp

DATA = b"renderer test artifact"


def _renderer() -> ProgressRenderer:
    return ProgressRenderer(Console(record=True, width=220, force_terminal=False))


def _text(renderer: ProgressRenderer) -> str:
    return renderer.console.export_text()


class TestProgressRenderer:
    def test_snapshot_panel(self, orchestrator, credential, fast_policy):
        outcome = orchestrator.anchor(DATA, credential, fast_policy)
        r = _renderer()
        r.console.print(r.render_snapshot(project(outcome.events)))
        out = _text(r)
        assert "Fingerprint" in out
        assert "DONE" in out
        assert outcome.run_id in out

    def test_follow_re_yields_events(self, orchestrator, credential, fast_policy):
        r = _renderer()
        events = list(r.follow(orchestrator.run(DATA, credential, fast_policy)))
        assert events[-1].record is not None

    def test_print_event(self, orchestrator, credential, fast_policy):
        r = _renderer()
        orchestrator.anchor(DATA, credential, fast_policy, on_event=r.print_event)
        out = _text(r)
        assert "fingerprinting" in out
        assert "committed" in out

    def test_record_and_history(self, orchestrator, credential, fast_policy, registry):
        record = orchestrator.anchor(DATA, credential, fast_policy).record
        r = _renderer()
        r.console.print(r.render_record(record))
        r.console.print(r.history_table(registry.history()))
        out = _text(r)
        assert record.fingerprint in out
        assert format_timestamp(record.timestamp) in out

    def test_verification_outputs(self, orchestrator, credential, fast_policy, registry):
        orchestrator.anchor(DATA, credential, fast_policy)
        verifier = Verifier(registry)
        r = _renderer()
        r.print_verification(verifier.verify(DATA, credential.identity()))
        r.print_verification(verifier.verify(DATA, "cd" * 32))
        r.print_verification(verifier.verify(b"other", credential.identity()))
        out = _text(r)
        assert "MATCHED" in out
        assert "MISMATCH" in out
        assert "NOT FOUND" in out


def test_format_timestamp():
    assert format_timestamp(1_704_067_200) == "2024-01-01 00:00:00 UTC"
