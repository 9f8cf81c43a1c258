"""
Tests for the scale-construction runner and its command line.

Test categories:
- Full run: transcript, summary CSV, per-variant CSVs
- Per-variant failure isolation
- CLI exit codes
"""

import dataclasses

import pandas as pd
import pytest

from survey_methods.preprocessing import SCALE_TRANSCRIPT
from survey_methods.scale_construction import VARIANTS, run, run_variant
from survey_methods.scale_construction import suite
from survey_methods.scale_construction.__main__ import main


class TestRun:

    def test_full_run_writes_outputs(self, tmp_path):
        results = run(output_dir=tmp_path, verbose=False, save_data=True)
        assert list(results) == list(VARIANTS)
        assert all(r.ok for r in results.values())

        text = (tmp_path / SCALE_TRANSCRIPT).read_text(encoding="utf-8")
        assert "Scale Construction by Simple Averaging" in text
        assert "Scale Construction by Unweighted and Weighted Averaging" in text
        assert "Flagged as reversed: x1" in text
        assert "(Intercept)" in text

        summary = pd.read_csv(tmp_path / "scale_summary.csv", encoding="utf-8-sig")
        assert list(summary['variant']) == list(VARIANTS)
        data1 = summary.set_index('variant').loc['data1']
        assert data1['alpha_all_items'] == pytest.approx(0.75)

        for name in VARIANTS:
            assert (tmp_path / f"{name}.csv").exists()
        data2 = pd.read_csv(tmp_path / "data2.csv", encoding="utf-8-sig")
        assert {'x1r', 'scale2'} <= set(data2.columns)
        data5 = pd.read_csv(tmp_path / "data5.csv", encoding="utf-8-sig")
        assert {'scale5u', 'scale5w', 'y'} <= set(data5.columns)

    def test_subset_and_no_transcript(self, tmp_path, capsys):
        results = run(variants=['data3'], output_dir=tmp_path, verbose=False, transcript=False)
        assert list(results) == ['data3']
        assert results['data3'].pipeline.selection.dropped(['x1', 'x2', 'x3', 'x4']) == ['x1']
        assert not (tmp_path / SCALE_TRANSCRIPT).exists()
        assert capsys.readouterr().out == ""

    def test_unknown_variant(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown variant"):
            run(variants=['data7'], output_dir=tmp_path, verbose=False)

    def test_failure_is_isolated(self, tmp_path, monkeypatch):
        broken = dataclasses.replace(VARIANTS['data1'], scale_items=('x1',))
        monkeypatch.setitem(VARIANTS, 'data1', broken)

        results = run(variants=['data1', 'data2'], output_dir=tmp_path, verbose=False)
        assert not results['data1'].ok
        assert "at least 2 items" in results['data1'].error
        assert results['data2'].ok

        text = (tmp_path / SCALE_TRANSCRIPT).read_text(encoding="utf-8")
        assert "[ERROR] data1" in text
        summary = pd.read_csv(tmp_path / "scale_summary.csv", encoding="utf-8-sig")
        assert list(summary['status']) == ['error', 'ok']


class TestRunVariant:

    def test_data4_prints_short_form(self, capsys):
        result = run_variant(VARIANTS['data4'], n=300)
        out = capsys.readouterr().out
        assert "Spearman-Brown" in out
        assert result.pipeline.composites == {'scale4': 'unweighted'}

    def test_summary_row(self, capsys):
        row = run_variant(VARIANTS['data3'], n=300).summary()
        assert row['dropped'] == 'x1'
        assert row['scale_items'] == 'x2, x3, x4'
        assert row['stage'] == 'composited'
        assert row['alpha_scale'] > row['alpha_all_items']


class TestCli:

    def test_list(self, capsys):
        assert main(['--list']) == 0
        out = capsys.readouterr().out
        for name in suite.AVAILABLE_VARIANTS:
            assert name in out

    def test_run_quiet(self, tmp_path):
        code = main(['--variant', 'data1', '--variant', 'data5', '--n', '300',
                     '--output-dir', str(tmp_path), '--quiet'])
        assert code == 0
        assert (tmp_path / SCALE_TRANSCRIPT).exists()

    def test_unknown_variant(self, tmp_path):
        with pytest.raises(SystemExit):
            main(['--variant', 'nope', '--output-dir', str(tmp_path)])

    def test_failure_exit_code(self, tmp_path, monkeypatch):
        monkeypatch.setitem(VARIANTS, 'data1', dataclasses.replace(VARIANTS['data1'], scale_items=('x1',)))
        assert main(['-v', 'data1', '-o', str(tmp_path), '-q']) == 1
