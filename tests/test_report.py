import io
import json

import pytest

from scripts.user_audit.config import AuditConfig
from scripts.user_audit.errors import ConfigurationError, PerItemFetchError
from scripts.user_audit.models import AuditResult, Principal
from scripts.user_audit.report import (
    CsvSink,
    JsonSink,
    StdoutSink,
    build_rows,
    make_sink,
    result_to_dict,
)


@pytest.fixture
def result():
    return AuditResult(
        principals=[Principal("alice"), Principal("bob+ops", "u-2")],
        groups=[["admins"], ["admins", "ops"]],
        failures=[PerItemFetchError("carol", RuntimeError("throttled"))],
        listed=3,
    )


class TestBuildRows:
    def test_lookup_url_is_quoted(self, result):
        rows = build_rows(result)
        assert rows[0].lookup_url == "https://www.office.com/search?q=alice"
        assert rows[1].lookup_url == "https://www.office.com/search?q=bob%2Bops"
        assert rows[1].groups == ["admins", "ops"]

    def test_groups_absent_when_not_fetched(self):
        rows = build_rows(AuditResult(principals=[Principal("alice")]), "https://x/{name}")
        assert rows[0].groups is None
        assert rows[0].lookup_url == "https://x/alice"


class TestCsvSink:
    def test_two_columns_without_header(self, tmp_path, result):
        path = tmp_path / "awsusers.csv"

        CsvSink(str(path)).write(result)

        assert path.read_text() == (
            "alice,https://www.office.com/search?q=alice\n"
            "bob+ops,https://www.office.com/search?q=bob%2Bops\n"
        )

    def test_optional_groups_column(self, tmp_path, result):
        path = tmp_path / "awsusers.csv"

        CsvSink(str(path), include_groups=True).write(result)

        lines = path.read_text().splitlines()
        assert lines[1] == "bob+ops,https://www.office.com/search?q=bob%2Bops,admins;ops"

    def test_empty_result_writes_empty_file(self, tmp_path):
        path = tmp_path / "awsusers.csv"
        CsvSink(str(path)).write(AuditResult(principals=[]))
        assert path.read_text() == ""


class TestJsonSink:
    def test_includes_failures(self, tmp_path, result):
        path = tmp_path / "report.json"

        JsonSink(str(path)).write(result)

        data = json.loads(path.read_text())
        assert data == result_to_dict(result)
        assert data["listed"] == 3
        assert data["matched"] == 2
        assert data["principals"][1]["id"] == "u-2"
        assert data["failures"] == [{"principal": "carol", "error": "throttled"}]


def test_stdout_sink_prints_names(result):
    stream = io.StringIO()
    StdoutSink(stream).write(result)
    assert stream.getvalue() == "alice\nbob+ops\n"


class TestMakeSink:
    def test_picks_sink_from_format(self):
        assert isinstance(make_sink(AuditConfig(output_format="csv")), CsvSink)
        assert isinstance(make_sink(AuditConfig(output_format="json")), JsonSink)
        assert isinstance(make_sink(AuditConfig(output_format="stdout")), StdoutSink)

    def test_unknown_format(self):
        with pytest.raises(ConfigurationError):
            make_sink(AuditConfig(output_format="xml"))
