import pytest

from animals import blobs as blobs_module
from animals.blobs import BlobStore, normalize_ext
from core import errors

from conftest import PNG_BYTES, blob_names


def test_save_writes_new_file_with_extension(blobs):
    name = blobs.save(PNG_BYTES, ".PNG")

    assert name.endswith(".png")
    assert (blobs.root / name).read_bytes() == PNG_BYTES
    assert blobs.exists(name)


def test_save_generates_distinct_names(blobs):
    names = {blobs.save(b"x", ".gif") for _ in range(20)}
    assert len(names) == 20


def test_save_never_overwrites_an_existing_name(blobs, monkeypatch):
    taken = blobs.save(b"original", ".png")
    candidates = iter([taken, "fresh-1.png"])
    monkeypatch.setattr(blobs_module, "generate_name", lambda ext="": next(candidates))

    name = blobs.save(b"second", ".png")

    assert name == "fresh-1.png"
    assert blobs.read(taken) == b"original"
    assert blobs.read(name) == b"second"


def test_save_raises_storage_io_on_write_failure(blobs, monkeypatch):
    def denied(*args, **kwargs):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(blobs_module, "open", denied, raising=False)

    with pytest.raises(errors.StorageIO):
        blobs.save(PNG_BYTES, ".png")


def test_read_unknown_name_is_not_found(blobs):
    with pytest.raises(errors.BlobNotFound):
        blobs.read("1700000000000-1.png")


@pytest.mark.parametrize("name", ["../secret.png", ".hidden", "a/b.png", ""])
def test_names_that_escape_the_root_never_resolve(blobs, name):
    assert blobs.exists(name) is False
    assert blobs.delete(name) is False
    with pytest.raises(errors.NotFound):
        blobs.read(name)


def test_delete_is_idempotent(blobs):
    name = blobs.save(PNG_BYTES, ".png")

    assert blobs.delete(name) is True
    assert blobs.delete(name) is False
    assert not blobs.exists(name)
    assert blob_names(blobs) == []


def test_delete_io_failure_raises_storage_io(blobs, monkeypatch):
    name = blobs.save(PNG_BYTES, ".png")

    def denied(self, missing_ok=False):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(blobs_module.Path, "unlink", denied)

    with pytest.raises(errors.StorageIO):
        blobs.delete(name)


def test_open_stream_yields_all_bytes(blobs):
    payload = bytes(range(256)) * 10
    name = blobs.save(payload, ".png")

    chunks = list(blobs.open_stream(name, chunk_size=100))

    assert len(chunks) > 1
    assert b"".join(chunks) == payload


def test_open_stream_missing_blob_fails_up_front(blobs):
    with pytest.raises(errors.BlobNotFound):
        blobs.open_stream("1700000000000-2.png")


def test_root_is_created(tmp_path):
    store = BlobStore(tmp_path / "nested" / "uploads")
    assert store.root.is_dir()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(".jpg", ".jpg"), ("PNG", ".png"), ("", ""), ("../x", ""), (".toolongextension", "")],
)
def test_normalize_ext(raw, expected):
    assert normalize_ext(raw) == expected


def test_exists_io_failure_raises_storage_io(blobs, monkeypatch):
    name = blobs.save(PNG_BYTES, ".png")

    def denied(self):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(blobs_module.Path, "is_file", denied)

    with pytest.raises(errors.StorageIO):
        blobs.exists(name)
