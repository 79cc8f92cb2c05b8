import json

import pytest

from uxr_prototype import main as main_module
from uxr_prototype.data.csv_parser import SAMPLE_CSV


@pytest.fixture(autouse=True)
def settings_env(monkeypatch, tmp_path):
    monkeypatch.setenv("UXR_ORIGIN", "https://example.org")
    monkeypatch.setenv("UXR_APP_PATH", "/app/")
    monkeypatch.setenv("UXR_PARTICIPANT_DIR", str(tmp_path / "participants"))
    monkeypatch.setenv("UXR_STORAGE_PATH", str(tmp_path / "storage.json"))
    monkeypatch.setenv("UXR_SESSION_PATH", str(tmp_path / "session.json"))


def test_sample_csv(capsys):
    assert main_module.main(["sample-csv"]) == 0
    assert capsys.readouterr().out.strip() == SAMPLE_CSV.strip()


def test_generate_participants(tmp_path, capsys):
    csv_file = tmp_path / "orgs.csv"
    csv_file.write_text("Organization,Account Name\nAcme,Sales\nAcme,Eng\nBeta,Ops\n")

    assert main_module.main(["generate-participants", str(csv_file), "--skip", "Beta"]) == 0

    lines = [line for line in capsys.readouterr().out.splitlines() if "\t" in line]
    assert len(lines) == 1
    name, count, path, url = lines[0].split("\t")
    assert (name, count) == ("Acme", "2")
    assert url.startswith("https://example.org/app/?data=participant-")
    assert json.loads(open(path, encoding="utf-8").read())["organizationName"] == "Acme"


def test_generate_participants_bad_csv(tmp_path):
    csv_file = tmp_path / "orgs.csv"
    csv_file.write_text("Name,Thing\nA,B\n")
    assert main_module.main(["generate-participants", str(csv_file)]) == 1


def test_missing_csv_file(tmp_path):
    assert main_module.main(["generate-participants", str(tmp_path / "missing.csv")]) == 1


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        main_module.main(["bogus"])


def test_generate_org_prints_csv(capsys):
    assert main_module.main(["generate-org", "Acme Corp", "--count", "3", "--seed", "7"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0] == "Organization,Account Name"
    assert len(lines) == 4
    assert all(line.startswith("Acme Corp,") for line in lines[1:])


def test_generate_org_rejects_blank_name():
    assert main_module.main(["generate-org", "  "]) == 1


def test_generate_org_add_persists(tmp_path, capsys):
    storage_file = tmp_path / "storage.json"
    storage_file.write_text(
        json.dumps({"uxr_csv_data": "Organization,Account Name\nAcme,Sales\n"})
    )

    assert main_module.main(["generate-org", "Initech", "--count", "2", "--add"]) == 0

    stored = json.loads(json.loads(storage_file.read_text())["uxr_organizations_data"])
    assert [o["name"] for o in stored] == ["Acme", "Initech"]
    assert len(stored[1]["accounts"]) == 3


def test_open_in_researcher_mode(tmp_path, capsys):
    (tmp_path / "storage.json").write_text(
        json.dumps({"uxr_csv_data": "Organization,Account Name\nAcme,Sales\nAcme,Eng\n"})
    )

    assert main_module.main(["open", "http://localhost:8000/account-group-uxr/"]) == 0

    lines = [line for line in capsys.readouterr().out.splitlines() if "\t" in line]
    assert lines[0] == "researcher\tAcme"
    assert [line.split("\t")[1] for line in lines[1:]] == ["Sales", "Eng"]


def test_scenarios_lists_available(monkeypatch, site, source, capsys):
    site.add_json(
        "data/scenarios/startup.json",
        {
            "scenarioName": "Startup",
            "organizationName": "Rocket Labs",
            "accounts": [],
            "metadata": {"scenario": "startup", "description": "Small team"},
        },
    )
    monkeypatch.setattr(main_module, "StaticSiteSource", lambda base_url: source)

    assert main_module.main(["scenarios"]) == 0

    lines = [line for line in capsys.readouterr().out.splitlines() if "\t" in line]
    assert lines == ["startup\tStartup\tSmall team"]
    assert site.requests == [
        "data/scenarios/enterprise.json",
        "data/scenarios/startup.json",
        "data/scenarios/agency.json",
    ]


def test_scenarios_none_available(monkeypatch, source):
    monkeypatch.setattr(main_module, "StaticSiteSource", lambda base_url: source)
    assert main_module.main(["scenarios"]) == 1
