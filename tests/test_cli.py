import json

import pandas as pd
import pytest

from auto_enrolment import cli

CENSUS = pd.DataFrame(
    {
        "employee_id": ["007", "E002"],
        "tax_identifier": ["1234567T", "7654321A"],
        "age": [35, 19],
        "employment_start_date": ["2024-01-15", "2025-05-01"],
        "gross_pay": [3000.0, 2500.0],
        "pay_frequency": ["monthly", "monthly"],
        "pay_period_end": ["2025-06-30", "2025-06-30"],
        "insurance_class": ["A1", "A1"],
    }
)


@pytest.fixture(autouse=True)
def no_log_files(monkeypatch):
    monkeypatch.setattr(cli, "setup_logging", lambda **kwargs: None)


@pytest.fixture
def census_path(tmp_path):
    path = tmp_path / "census.csv"
    CENSUS.to_csv(path, index=False)
    return path


def test_csv_output(census_path, tmp_path):
    output = tmp_path / "out" / "results.csv"
    code = cli.main(["--census", str(census_path), "--as-of", "2025-06-30", "--output", str(output)])
    assert code == 0
    df = pd.read_csv(output, dtype={"employee_id": str})
    assert list(df["employee_id"]) == ["007", "E002"]
    assert list(df["is_eligible"]) == [True, False]
    assert df.loc[0, "auto_enrolment_date"] == "2024-10-01"


def test_json_output(census_path, tmp_path):
    output = tmp_path / "results.json"
    assert cli.main(["--census", str(census_path), "--as-of", "2025-06-30", "--output", str(output)]) == 0
    rows = json.loads(output.read_text())
    assert [row["employee_id"] for row in rows] == ["007", "E002"]
    assert rows[1]["eligibility_reason"].startswith("Age 19")


def test_summary_is_printed(census_path, capsys):
    assert cli.main(["--census", str(census_path), "--as-of", "2025-06-30", "--summary"]) == 0
    out = capsys.readouterr().out
    assert "mean_risk_score" in out
    assert "critical" in out


def test_config_file_is_applied(census_path, tmp_path):
    config = tmp_path / "rules.yaml"
    config.write_text("plan_rules:\n  eligibility:\n    min_age: 18\n")
    output = tmp_path / "results.csv"
    args = ["--census", str(census_path), "--config", str(config), "--as-of", "2025-06-30", "--output", str(output)]
    assert cli.main(args) == 0
    assert list(pd.read_csv(output)["is_eligible"]) == [True, True]


def test_missing_census_fails(tmp_path):
    assert cli.main(["--census", str(tmp_path / "nope.csv")]) == 1


def test_bad_config_fails(census_path, tmp_path):
    config = tmp_path / "rules.yaml"
    config.write_text("plan_rules:\n  staging:\n    frequency: quarterly\n    days_of_month: [32]\n")
    assert cli.main(["--census", str(census_path), "--config", str(config)]) == 1


def test_bad_as_of_is_rejected(census_path):
    with pytest.raises(SystemExit):
        cli.parse_arguments(["--census", str(census_path), "--as-of", "not-a-date"])


def test_defaults():
    args = cli.parse_arguments(["--census", "census.csv"])
    assert args.as_of is None
    assert args.output is None
    assert args.debug is False
    assert args.log_dir == str(cli.LOG_DIR)


def test_unparseable_cell_is_reported_not_fatal(tmp_path):
    census = CENSUS.astype({"age": object})
    census.loc[0, "age"] = "thirty"
    path = tmp_path / "census.csv"
    census.to_csv(path, index=False)
    output = tmp_path / "results.csv"
    assert cli.main(["--census", str(path), "--as-of", "2025-06-30", "--output", str(output)]) == 0
    df = pd.read_csv(output, dtype={"employee_id": str})
    assert list(df["employee_id"]) == ["007", "E002"]
    assert "unparseable_values" in df.loc[0, "issue_codes"].split(",")
    assert not df.loc[0, "is_eligible"]
    assert df.loc[0, "risk_band"] == "critical"


def test_summary_includes_eligibility_reasons(census_path, capsys):
    assert cli.main(["--census", str(census_path), "--as-of", "2025-06-30", "--summary"]) == 0
    out = capsys.readouterr().out
    assert "Eligible: 1 of 2 (50.0%)" in out
    assert "Age 19 is outside the eligible range 23-60" in out
