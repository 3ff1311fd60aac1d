import json

from declprune.config import (
    TEST_FILE_SUFFIXES, ContentUnreadable, SyntaxAnalysisFailure, load_config
)


def test_missing_file_gives_defaults(tmp_path):
    config = load_config(tmp_path / ".declprune.json")
    assert config.allow_list == []
    assert config.exclusion_suffixes == []
    assert config.test_file_suffixes == TEST_FILE_SUFFIXES


def test_defaults_are_not_shared(tmp_path):
    first = load_config(tmp_path / "missing.json")
    first.allow_list.append("Foo")
    first.test_file_suffixes.append("Check.swift")
    second = load_config(tmp_path / "missing.json")
    assert second.allow_list == []
    assert "Check.swift" not in second.test_file_suffixes


def test_reads_project_file(tmp_path):
    path = tmp_path / ".declprune.json"
    path.write_text(json.dumps({
        "allow_list": ["AppDelegate", "*ViewModel"],
        "exclusion_suffixes": ["Generated"],
        "max_in_flight": 4,
        "test_file_suffixes": ["Check.swift"],
    }))

    config = load_config(path)
    assert config.allow_list == ["AppDelegate", "*ViewModel"]
    assert config.exclusion_suffixes == ["Generated"]
    assert config.max_in_flight == 4
    assert config.test_file_suffixes == ["Check.swift"]


def test_default_location_is_cwd(tmp_path, monkeypatch):
    (tmp_path / ".declprune.json").write_text('{"allow_list": ["Main"]}')
    monkeypatch.chdir(tmp_path)
    assert load_config().allow_list == ["Main"]


def test_bad_file_falls_back_to_defaults(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]")

    assert load_config(broken).allow_list == []
    assert load_config(listing).allow_list == []


def test_error_messages():
    assert str(ContentUnreadable("A.swift")) == "Retrieving contents of A.swift failed"
    assert "No such file" in str(ContentUnreadable("A.swift", "No such file"))
    error = SyntaxAnalysisFailure("B.swift", "exit status 1")
    assert error.path == "B.swift"
    assert "exit status 1" in str(error)
