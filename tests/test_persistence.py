import json

from portfolio_tracker.portfolio.persistence import STORAGE_KEY, InMemoryStorage, JsonFileStorage


def test_in_memory_storage_round_trips_snapshot() -> None:
    storage = InMemoryStorage()
    assert storage.load() is None
    storage.save({"portfolios": [], "selectedPortfolio": None})
    assert storage.load() == {"portfolios": [], "selectedPortfolio": None}


def test_json_file_storage_keeps_other_keys(tmp_path) -> None:
    path = tmp_path / "nested" / "storage.json"
    path.parent.mkdir()
    path.write_text(json.dumps({"theme": "dark"}), encoding="utf-8")

    storage = JsonFileStorage(str(path))
    storage.save({"portfolios": [], "selectedPortfolio": None})

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["theme"] == "dark"
    assert data[STORAGE_KEY] == {"portfolios": [], "selectedPortfolio": None}
    assert storage.load() == {"portfolios": [], "selectedPortfolio": None}


def test_json_file_storage_missing_file_loads_none(tmp_path) -> None:
    storage = JsonFileStorage(str(tmp_path / "absent.json"))
    assert storage.load() is None


def test_json_file_storage_creates_directory_and_leaves_no_temp_files(tmp_path) -> None:
    path = tmp_path / "deep" / "dir" / "storage.json"
    JsonFileStorage(str(path)).save({"portfolios": []})
    assert path.exists()
    assert [item.name for item in path.parent.iterdir()] == ["storage.json"]
