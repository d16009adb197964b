import json
from pathlib import Path

import pytest

from src.privacy_app.data import guides_repository
from src.privacy_app.data.guides_repository import load_guides
from src.privacy_app.errors import InvalidRecord

CATALOG = Path(__file__).resolve().parents[1] / "data" / "guides.json"


@pytest.fixture(autouse=True)
def _clear_cache():
    load_guides.cache_clear()
    yield
    load_guides.cache_clear()


def _write(tmp_path, content: str) -> Path:
    path = tmp_path / "guides.json"
    path.write_text(content, encoding="utf-8")
    return path


def test_bundled_catalog_loads():
    guides = load_guides(CATALOG)

    assert len(guides) == 7
    assert all(guide.steps for guide in guides)
    assert "eniro" in {guide.site_id for guide in guides}


def test_missing_catalog_is_empty(tmp_path):
    assert load_guides(tmp_path / "absent.json") == ()


def test_duplicate_ids_keep_first_entry(tmp_path):
    path = _write(
        tmp_path,
        json.dumps(
            [
                {"site_id": "eniro", "site_name": "Eniro", "steps": ["Search", "Request removal"]},
                {"site_id": "eniro", "site_name": "Duplicate"},
                {"id": "hitta", "steps": ["", "Log in"]},
            ]
        ),
    )

    guides = load_guides(path)

    assert [guide.site_id for guide in guides] == ["eniro", "hitta"]
    assert guides[0].site_name == "Eniro"
    assert guides[1].site_name == "hitta"
    assert guides[1].steps == ("Log in",)


def test_catalog_must_be_a_list(tmp_path):
    path = _write(tmp_path, json.dumps({"eniro": {}}))

    with pytest.raises(InvalidRecord) as excinfo:
        load_guides(path)
    assert excinfo.value.table == "guides"


@pytest.mark.parametrize("entry", ["eniro", 3, None, ["eniro"]])
def test_entries_must_be_objects(tmp_path, entry):
    path = _write(tmp_path, json.dumps([{"site_id": "hitta"}, entry]))

    with pytest.raises(InvalidRecord, match="entry 1"):
        load_guides(path)


def test_entry_without_site_id_is_rejected(tmp_path):
    path = _write(tmp_path, json.dumps([{"site_name": "Nameless"}]))

    with pytest.raises(InvalidRecord, match="no site_id"):
        load_guides(path)


def test_steps_must_be_a_list(tmp_path):
    path = _write(tmp_path, json.dumps([{"site_id": "eniro", "steps": "Search"}]))

    with pytest.raises(InvalidRecord, match="steps"):
        load_guides(path)


def test_malformed_json_is_invalid_record(tmp_path):
    path = _write(tmp_path, '[{"site_id": "eniro",')

    with pytest.raises(InvalidRecord, match="not valid JSON"):
        load_guides(path)


def test_default_catalog_comes_from_settings(tmp_path, monkeypatch):
    path = _write(tmp_path, json.dumps([{"site_id": "only"}]))
    monkeypatch.setattr(guides_repository.settings, "guide_catalog_file", path)

    assert [guide.site_id for guide in load_guides()] == ["only"]
