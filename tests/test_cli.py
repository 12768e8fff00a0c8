"""
Tests for the orgchart command line.
"""
import pytest

from orgchart.cli import OrgChartCli, summarize
from orgchart.config import StorageFormat
from orgchart.persistence import DocumentStorage, RelationalStorage

GROUP_WITH_CHILD = (
    "#SECTION: UNITS\nTYPE,ID,NAME,DESCRIPTION,PARENT_ID\n"
    "Board,u1,Acme,,\nGroup,u2,Core,,u1\nDepartment,u3,Nested,,u2\n"
    "#SECTION: ROLES\nUNIT_ID,NAME,DESCRIPTION\nu1,Presidente,\n"
    "#SECTION: EMPLOYEES\nID,NAME\n"
    "#SECTION: ASSIGNMENTS\nEMPLOYEE_ID,ROLE_NAME,UNIT_ID\n"
)


@pytest.fixture
def cli(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    return OrgChartCli()


@pytest.fixture
def acme_json(acme, tmp_path):
    path = str(tmp_path / "acme.json")
    assert DocumentStorage().save(acme, path)
    return path


def test_no_command_prints_help(cli, capsys):
    assert cli.run([]) == 2
    assert "usage: orgchart" in capsys.readouterr().out


def test_convert_through_every_format(cli, acme, acme_json, tmp_path, capsys, describe):
    csv_path = str(tmp_path / "acme.csv")
    db_path = str(tmp_path / "acme.db")
    ser_path = str(tmp_path / "acme.ser")

    assert cli.run(["convert", acme_json, csv_path]) == 0
    assert cli.run(["convert", csv_path, db_path]) == 0
    assert cli.run(["convert", db_path, ser_path]) == 0
    assert "Converted" in capsys.readouterr().out

    final = str(tmp_path / "final.json")
    assert cli.run(["convert", ser_path, final]) == 0
    assert describe(DocumentStorage().load(final)) == describe(acme)


def test_convert_with_explicit_formats(cli, acme_json, tmp_path):
    destination = str(tmp_path / "acme.dat")
    assert cli.run(["convert", acme_json, destination, "--to", "tabular"]) == 0
    with open(destination, encoding="utf-8") as file:
        assert file.readline().startswith("#SECTION: UNITS")


def test_convert_missing_source(cli, tmp_path, capsys):
    assert cli.run(["convert", str(tmp_path / "missing.json"), str(tmp_path / "out.csv")]) == 1
    assert "Cannot load" in capsys.readouterr().out


def test_unknown_extension_is_a_usage_error(cli, acme_json, tmp_path):
    with pytest.raises(SystemExit):
        cli.run(["convert", acme_json, str(tmp_path / "acme.xml")])


def test_validate_ok(cli, acme_json, capsys):
    assert cli.run(["validate", acme_json]) == 0
    assert capsys.readouterr().out.strip().endswith("OK")


def test_validate_reports_violations(cli, tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text(GROUP_WITH_CHILD, encoding="utf-8")

    assert cli.run(["validate", str(path)]) == 1
    out = capsys.readouterr().out
    assert "Violation: Group 'Core'" in out
    assert "1 violation(s)" in out


def test_info(cli, tmp_path, acme, capsys):
    path = str(tmp_path / "acme.db")
    assert RelationalStorage().save(acme, path)

    assert cli.run(["info", path]) == 0
    out = capsys.readouterr().out
    assert "Root: Acme (Board)" in out
    assert "Units: 3" in out
    assert "Employees: 2" in out
    assert "Root chosen by rule: single" in out


def test_info_with_format_override(cli, acme_json, tmp_path, capsys):
    path = tmp_path / "chart.dat"
    path.write_bytes((tmp_path / "acme.json").read_bytes())
    assert cli.run(["info", str(path), "--format", "document"]) == 0
    assert "Roles: 3" in capsys.readouterr().out


def test_env_files(cli, tmp_path):
    env_file = tmp_path / "local.env"
    env_file.write_text("ORGCHART_STORAGE_FORMAT=binary\nORGCHART_VALIDATE_ON_LOAD=false\nUNRELATED=1\n")

    args = cli.parser.parse_args(["--env-files", str(env_file), "info", "acme.json"])
    config = cli.load_config(args)
    assert config.STORAGE_FORMAT is StorageFormat.BINARY
    assert config.VALIDATE_ON_LOAD is False


def test_missing_env_file(cli, tmp_path):
    with pytest.raises(SystemExit):
        cli.run(["--env-files", str(tmp_path / "missing.env"), "info", "acme.json"])


def test_summarize(acme):
    assert summarize(acme) == [
        "Root: Acme (Board)",
        "Units: 3",
        "Roles: 3",
        "Employees: 2",
    ]


def test_repeated_env_files_later_wins(cli, tmp_path):
    first = tmp_path / "base.env"
    first.write_text("ORGCHART_STORAGE_FORMAT=binary\nORGCHART_LOG_LEVEL=debug\n")
    second = tmp_path / "local.env"
    second.write_text("ORGCHART_STORAGE_FORMAT=tabular\n")

    args = cli.parser.parse_args(["--env-files", str(first), "--env-files", str(second), "validate", "acme.csv"])
    assert args.command == "validate"
    assert args.source == "acme.csv"
    config = cli.load_config(args)
    assert config.STORAGE_FORMAT is StorageFormat.TABULAR
    assert config.LOG_LEVEL == "DEBUG"


def test_env_files_before_command_runs_it(cli, acme_json, tmp_path, capsys):
    env_file = tmp_path / "local.env"
    env_file.write_text("ORGCHART_ROOT_KEYWORDS=acme\n")
    assert cli.run(["--env-files", str(env_file), "info", acme_json, "--format", "document"]) == 0
    assert "Root: Acme (Board)" in capsys.readouterr().out
