"""Tests for the offline JSON notebook and its CLI."""

from __future__ import annotations

import json

import pytest

from scripts import notebook_cli
from scripts.notebook_cli import main_async
from services.geocoding_service import GeocodeResult
from services.offline_notebook_service import OfflineNotebook


@pytest.fixture
def notebook(tmp_path) -> OfflineNotebook:
    return OfflineNotebook(tmp_path / "location_notebook_data.json")


def test_add_and_reload(notebook, tmp_path):
    entry = notebook.add_location("Galata", 41.0256, 28.9744, "tower")

    reloaded = OfflineNotebook(notebook.path)
    assert [e.id for e in reloaded.locations()] == [entry.id]
    stored = json.loads(notebook.path.read_text(encoding="utf-8"))
    assert stored[0]["name"] == "Galata"
    assert stored[0]["latitude"] == 41.0256
    assert stored[0]["longitude"] == 28.9744
    assert "lat" not in stored[0]
    assert stored[0]["photos"] == []


def test_add_rejects_invalid_input(notebook):
    with pytest.raises(ValueError, match="Invalid coordinates"):
        notebook.add_location("Nowhere", 100, 0)
    with pytest.raises(ValueError):
        notebook.add_location("  ", 41.0, 29.0)
    assert notebook.locations() == []


def test_update_location(notebook):
    entry = notebook.add_location("Galata", 41.0256, 28.9744)

    updated = notebook.update_location(entry.id, name="Galata Kulesi", description=None)
    assert updated.name == "Galata Kulesi"
    assert updated.latitude == 41.0256
    assert notebook.update_location("missing", name="x") is None
    with pytest.raises(ValueError):
        notebook.update_location(entry.id, latitude=-95)


def test_delete_location(notebook):
    entry = notebook.add_location("Galata", 41.0256, 28.9744)
    assert notebook.delete_location(entry.id) is True
    assert notebook.delete_location(entry.id) is False
    assert notebook.locations() == []


def test_photos_are_stored_inline(notebook, tmp_path):
    entry = notebook.add_location("Galata", 41.0256, 28.9744)
    image = tmp_path / "shot.jpg"
    image.write_bytes(b"\xff\xd8\xff\xe0jpeg")

    photo = notebook.add_photo(entry.id, image)
    assert photo.url.startswith("data:image/jpeg;base64,")
    assert photo.original_name.startswith("photo_")

    assert notebook.delete_photo(entry.id, photo.id) is True
    assert notebook.delete_photo(entry.id, photo.id) is False
    assert notebook.get(entry.id).photos == []


def test_add_photo_errors(notebook, tmp_path):
    text_file = tmp_path / "notes.txt"
    text_file.write_text("hello")
    with pytest.raises(LookupError):
        notebook.add_photo("missing", text_file)

    entry = notebook.add_location("Galata", 41.0256, 28.9744)
    with pytest.raises(ValueError, match="Only image files"):
        notebook.add_photo(entry.id, text_file)


def test_export_import_round_trip(notebook, tmp_path):
    notebook.add_location("Galata", 41.0256, 28.9744)
    exported = notebook.export_data()

    other = OfflineNotebook(tmp_path / "other.json")
    assert other.import_data(exported) is True
    assert [e.name for e in other.locations()] == ["Galata"]


MOBILE_EXPORT = """[
  {
    "id": "1718000000000",
    "name": "Galata Kulesi",
    "latitude": 41.0256,
    "longitude": 28.9741,
    "description": "",
    "timestamp": "2024-06-10T08:13:20.000Z",
    "address": "Bereketzade, Galata Kulesi, Beyoglu",
    "photos": [
      {
        "id": "1718000000001",
        "url": "data:image/jpeg;base64,/9j/4AAQ",
        "originalName": "photo_1718000000001.jpg",
        "uploadedAt": "2024-06-10T08:13:21.000Z",
        "filePath": "photos/photo_1718000000001.jpg"
      }
    ]
  }
]"""


def test_import_mobile_export(notebook):
    assert notebook.import_data(MOBILE_EXPORT) is True

    entry = OfflineNotebook(notebook.path).get("1718000000000")
    assert entry.latitude == 41.0256
    assert entry.longitude == 28.9741
    assert entry.address == "Bereketzade, Galata Kulesi, Beyoglu"
    assert entry.photos[0].original_name == "photo_1718000000001.jpg"

    exported = json.loads(notebook.export_data())[0]
    assert {"id", "name", "latitude", "longitude", "timestamp", "photos"} <= set(exported)
    assert exported["photos"][0]["originalName"] == "photo_1718000000001.jpg"


@pytest.mark.parametrize("raw", ['{"name": "x"}', "not json", '[{"name": "x"}]'])
def test_import_rejects_bad_data(notebook, raw):
    notebook.add_location("Galata", 41.0256, 28.9744)
    before = notebook.path.read_text(encoding="utf-8")

    assert notebook.import_data(raw) is False
    assert notebook.path.read_text(encoding="utf-8") == before


def test_clear(notebook):
    notebook.add_location("Galata", 41.0256, 28.9744)
    notebook.clear()
    assert OfflineNotebook(notebook.path).locations() == []


def test_distances_from(notebook):
    notebook.add_location("Ankara", 39.9334, 32.8597)
    notebook.add_location("Galata", 41.0256, 28.9744)

    rows = notebook.distances_from(41.0256, 28.9744)
    assert [r[0].name for r in rows] == ["Galata", "Ankara"]
    assert rows[0][2] == "0m"
    assert rows[1][2].endswith("km")


class _Geocoder:
    def __init__(self, results):
        self.results = list(results)

    async def reverse(self, lat, lng):
        return self.results.pop(0)


@pytest.mark.asyncio
async def test_fill_missing_addresses(notebook):
    notebook.add_location("Galata", 41.0256, 28.9744)
    notebook.add_location("Nowhere", 10.0, 20.0)
    notebook.add_location("Known", 40.0, 29.0, address="already set")

    filled = await notebook.fill_missing_addresses(
        _Geocoder([GeocodeResult("Galata Kulesi, Beyoglu", "nominatim"), None])
    )

    assert filled == 2
    by_name = {e.name: e.address for e in OfflineNotebook(notebook.path).locations()}
    assert by_name == {
        "Galata": "Galata Kulesi, Beyoglu",
        "Nowhere": "10.000000, 20.000000",
        "Known": "already set",
    }


# ---- CLI -------------------------------------------------------------------

@pytest.mark.asyncio
async def test_cli_add_list_delete(tmp_path, capsys):
    path = str(tmp_path / "nb.json")

    assert await main_async(["--file", path, "add", "Galata", "41.0256", "28.9744"]) == 0
    entry_id = OfflineNotebook(path).locations()[0].id

    assert await main_async(["--file", path, "list", "--near", "41.0,29.0"]) == 0
    out = capsys.readouterr().out
    assert "Galata" in out
    assert "https://maps.google.com/?q=41.0256,28.9744" in out

    assert await main_async(["--file", path, "delete", entry_id]) == 0
    assert await main_async(["--file", path, "delete", entry_id]) == 1


@pytest.mark.asyncio
async def test_cli_rejects_invalid_coordinates(tmp_path, capsys):
    path = str(tmp_path / "nb.json")
    assert await main_async(["--file", path, "add", "Bad", "95", "0"]) == 1
    assert "Invalid coordinates" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_cli_export_import(tmp_path):
    src = str(tmp_path / "a.json")
    dst = str(tmp_path / "b.json")
    export_file = tmp_path / "export.json"

    await main_async(["--file", src, "add", "Galata", "41.0256", "28.9744"])
    assert await main_async(["--file", src, "export", "--out", str(export_file)]) == 0
    assert await main_async(["--file", dst, "import", str(export_file)]) == 0
    assert [e.name for e in OfflineNotebook(dst).locations()] == ["Galata"]

    bad = tmp_path / "bad.json"
    bad.write_text('{"not": "a list"}')
    assert await main_async(["--file", dst, "import", str(bad)]) == 1


class _FakeGeocodingService:
    calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def address_or_label(self, lat, lng):
        self.calls.append((lat, lng))
        return "Istiklal Caddesi, Beyoglu"


@pytest.mark.asyncio
async def test_cli_add_resolves_only_the_new_entry(tmp_path, monkeypatch):
    path = tmp_path / "nb.json"
    OfflineNotebook(path).add_location("Older", 40.0, 29.0)
    monkeypatch.setattr(notebook_cli, "ReverseGeocodingService", _FakeGeocodingService)
    monkeypatch.setattr(_FakeGeocodingService, "calls", [])

    args = ["--file", str(path), "add", "Taksim", "41.0369", "28.985", "--resolve-address"]
    assert await main_async(args) == 0

    assert _FakeGeocodingService.calls == [(41.0369, 28.985)]
    by_name = {e.name: e.address for e in OfflineNotebook(path).locations()}
    assert by_name == {"Older": None, "Taksim": "Istiklal Caddesi, Beyoglu"}
