from memory_import import cli
from memory_import.media.pipeline import BatchImporter
from tests.conftest import FakeRecordStore, FakeSource, FakeStorage, fake_loader, make_asset


def _patch_importer(monkeypatch, store):
    def build(settings, media_root=None):
        return BatchImporter(
            source=FakeSource({"Summer Trip": [make_asset("p1", "2023-08-01T10:00:00")]}),
            storage=FakeStorage(),
            record_store=store,
            loader=fake_loader,
        )

    monkeypatch.setattr(cli, "build_importer", build)


def test_imports_and_prints_summary(monkeypatch, capsys):
    store = FakeRecordStore()
    _patch_importer(monkeypatch, store)

    code = cli.main(["--collection", "summer trip", "--owner-id", "couple-1", "--user-id", "user-2"])

    assert code == 0
    assert store.records[0].created_by == "user-2"
    assert store.records[0].tags == ["batch-import", "summer-trip"]
    out = capsys.readouterr().out
    assert "Memories created: 1" in out


def test_unknown_collection_exits_nonzero(monkeypatch, capsys):
    _patch_importer(monkeypatch, FakeRecordStore())

    code = cli.main(["--collection", "Winter", "--owner-id", "couple-1"])

    assert code == 1
    assert 'Collection "Winter" not found' in capsys.readouterr().err
