"""
Smoke tests for the demo entry point (synchronous replay only).

The demo modules live at the repository root and are not installed; the
conftest puts the root on sys.path.
"""

import math

import config
from main import TdoaPositioningDemo, build_registry


class TestDemo:
    """Tests for the synthetic-agent demo."""

    def test_build_registry_from_config(self):
        """Test the demo registry holds exactly the configured anchors."""
        registry = build_registry()
        assert registry.configured_indices() == sorted(config.ANCHOR_CONFIG)

    def test_replay_runs_and_reports(self, capsys):
        """Test a 2 s replay processes every sample and prints the report."""
        demo = TdoaPositioningDemo(noise_std_m=0.0)

        demo.run(duration_s=2.0, replay=True)
        demo.stop()

        assert demo.sample_count == 200
        assert demo.ekf.snapshot().num_predicts > 0
        assert all(math.isfinite(e) for e in demo.errors_m)

        out = capsys.readouterr().out
        assert 'TDOA demo finished' in out
        assert 'METRICS SUMMARY' in out
