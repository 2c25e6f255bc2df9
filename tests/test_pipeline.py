"""End-to-end tests for run_analysis with a stand-in fabric executable."""

from __future__ import annotations

import csv

import pytest

from pattern_analysis_mcp.errors import EmptyOutput, InvocationTimeout, NonZeroExit
from pattern_analysis_mcp.events import EventLog
from pattern_analysis_mcp.models.analysis import AnalysisKind, ContentKind
from pattern_analysis_mcp.pipeline import make_request, run_analysis
from tests.conftest import COPYWRITING_RESPONSE, WISDOM_RESPONSE

pytestmark = pytest.mark.unit


@pytest.fixture()
def copywriting_fabric(fake_fabric):
    return fake_fabric(f"sys.stdin.read()\nprint({COPYWRITING_RESPONSE!r})")


class TestMakeRequest:
    def test_uses_config_limits(self, make_config):
        request = make_request("Buy now", "analyze_copywriting_score", config=make_config(max_input_length=42, timeout=3))
        assert request.content_kind is ContentKind.TEXT
        assert request.analysis_kind is AnalysisKind.COPYWRITING_SCORE
        assert request.max_input_length == 42
        assert request.timeout_millis == 3000

    @pytest.mark.parametrize("raw", ["", "   \n\t"])
    def test_blank_input_rejected(self, raw, make_config):
        with pytest.raises(ValueError, match="No input provided"):
            make_request(raw, AnalysisKind.EXTRACT_WISDOM, config=make_config())

    def test_unknown_kind_rejected(self, make_config):
        with pytest.raises(ValueError, match="Unknown analysis kind"):
            make_request("text", "summarize", config=make_config())


class TestRunAnalysis:
    async def test_text_success_with_export(self, copywriting_fabric, make_config, tmp_path):
        cfg = make_config(copywriting_fabric)
        outcome = await run_analysis("Buy now, limited offer!", AnalysisKind.COPYWRITING_SCORE, config=cfg)

        record = outcome.record
        assert record.content_kind is ContentKind.TEXT
        assert record.scored_fields["headline"] == 8
        assert record.list_fields["improvements"][0] == "Tighten the headline to under ten words"
        assert record.original_input == "Buy now, limited offer!"
        assert record.full_response_text == COPYWRITING_RESPONSE + "\n"

        expected = tmp_path / "exports" / "copywriting-analysis.csv"
        assert outcome.export_path == str(expected)
        assert outcome.export_error == ""
        with expected.open(newline="", encoding="utf-8") as fh:
            rows = list(csv.reader(fh))
        assert len(rows) == 2
        assert rows[1][3] == "8"

        events = [line.split("] ", 1)[1].split(":", 1)[0] for line in outcome.log]
        assert events == ["classify", "spawn", "exit", "extract", "export"]

    async def test_youtube_passes_url_argument(self, fake_fabric, make_config):
        script = fake_fabric(
            "assert sys.argv[1:4] == ['--youtube', 'https://youtu.be/dQw4w9WgXcQ', '--transcript'], sys.argv\n"
            f"print({WISDOM_RESPONSE!r})"
        )
        outcome = await run_analysis(
            "https://youtu.be/dQw4w9WgXcQ", "extract_wisdom", config=make_config(script), export=False,
        )
        assert outcome.record.content_kind is ContentKind.YOUTUBE
        assert outcome.record.text_fields["takeaway"] == "Small daily output compounds into mastery."
        assert outcome.export_path == ""

    async def test_truncation_flagged(self, fake_fabric, make_config):
        script = fake_fabric("data = sys.stdin.read()\nprint('Overall: 5/10 ' + str(len(data)))")
        cfg = make_config(script, max_input_length=10)
        outcome = await run_analysis("z" * 50, "analyze_copywriting_score", config=cfg, export=False)
        assert outcome.truncated is True
        assert outcome.record.scored_fields["overall"] == 5
        assert outcome.record.original_input == "z" * 50
        assert any("truncate:" in line for line in outcome.log)

    async def test_auto_export_off_skips_file(self, copywriting_fabric, make_config, tmp_path):
        cfg = make_config(copywriting_fabric, auto_export=False)
        outcome = await run_analysis("copy", "analyze_copywriting_score", config=cfg)
        assert outcome.export_path == ""
        assert not (tmp_path / "exports").exists()

    async def test_export_dir_override(self, copywriting_fabric, make_config, tmp_path):
        outcome = await run_analysis(
            "copy", "analyze_copywriting_score",
            config=make_config(copywriting_fabric),
            export_dir=tmp_path / "elsewhere",
        )
        assert outcome.export_path == str(tmp_path / "elsewhere" / "copywriting-analysis.csv")

    async def test_export_failure_keeps_record(self, copywriting_fabric, make_config, tmp_path):
        """A failed write is reported on the outcome without losing the analysis."""
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        cfg = make_config(copywriting_fabric, export_dir=str(blocker))
        outcome = await run_analysis("copy", "analyze_copywriting_score", config=cfg)
        assert outcome.record.scored_fields["clarity"] == 7
        assert outcome.export_path == ""
        assert "Could not write export file" in outcome.export_error

    async def test_unparseable_output_still_succeeds(self, fake_fabric, make_config):
        script = fake_fabric("print('I could not follow the pattern, sorry.')")
        outcome = await run_analysis("x", "create_competitive_audit", config=make_config(script), export=False)
        assert outcome.record.matched_count == 0
        assert outcome.record.full_response_text == "I could not follow the pattern, sorry.\n"
        assert outcome.record.list_fields["strengths"] == []

    async def test_invocation_errors_propagate(self, fake_fabric, make_config):
        failing = fake_fabric("sys.exit(3)", name="failing")
        empty = fake_fabric("pass", name="empty")
        slow = fake_fabric("time.sleep(5)", name="slow")
        with pytest.raises(NonZeroExit):
            await run_analysis("x", "extract_wisdom", config=make_config(failing))
        with pytest.raises(EmptyOutput):
            await run_analysis("x", "extract_wisdom", config=make_config(empty))
        with pytest.raises(InvocationTimeout):
            await run_analysis("x", "extract_wisdom", config=make_config(slow, timeout=1))

    async def test_caller_supplied_log(self, copywriting_fabric, make_config):
        log = EventLog()
        outcome = await run_analysis("copy", "analyze_copywriting_score", config=make_config(copywriting_fabric), log=log, export=False)
        assert outcome.log == log.lines
        assert len(log) == 4

    async def test_full_response_text_is_untouched(self, fake_fabric, make_config):
        """GIVEN output padded with whitespace THEN full_response_text keeps it byte for byte."""
        script = fake_fabric("sys.stdout.write('\\n  Overall: 7/10  \\n\\n')")
        outcome = await run_analysis("x", "analyze_copywriting_score", config=make_config(script), export=False)
        assert outcome.record.full_response_text == "\n  Overall: 7/10  \n\n"
        assert outcome.record.scored_fields["overall"] == 7
