import pytest

from app.files.exceptions import AlreadyExistsError, NotFoundError, NotPermittedError
from app.files.storage import MAX_NAME_BYTES, File, Folder, normalize_path


def test_normalize_path():
    assert normalize_path("alice/files//Docs/") == "/alice/files/Docs"
    assert normalize_path("/alice/files/Docs/../a.pdf") == "/alice/files/a.pdf"


def test_user_folder_is_created_on_first_use(root, tmp_path):
    folder = root.get_user_folder("alice")
    assert isinstance(folder, Folder)
    assert folder.path == "/alice/files"
    assert folder.owner == "alice"
    assert (tmp_path / "data" / "alice" / "files").is_dir()


@pytest.mark.parametrize("uid", ["", "..", "a/b"])
def test_user_folder_rejects_bad_uid(root, uid):
    with pytest.raises(NotFoundError):
        root.get_user_folder(uid)


def test_new_file_gets_a_stable_id(root, user_folder):
    new_file = user_folder.new_file("a.pdf", b"%PDF-1.4")

    assert isinstance(new_file, File)
    assert new_file.path == "/alice/files/a.pdf"
    assert new_file.size == 8
    assert new_file.get_content() == b"%PDF-1.4"
    assert root.get("/alice/files/a.pdf").id == new_file.id
    assert [n.path for n in root.get_by_id(new_file.id)] == ["/alice/files/a.pdf"]


def test_new_file_refuses_to_overwrite(user_folder):
    user_folder.new_file("a.pdf", b"one")
    with pytest.raises(NotPermittedError):
        user_folder.new_file("a.pdf", b"two")
    assert user_folder.get("a.pdf").get_content() == b"one"


@pytest.mark.parametrize("name", ["", "..", "x/y.pdf", "a\x00b.pdf", "tab\there.pdf", "x" * 252 + ".pdf"])
def test_new_file_rejects_bad_names(user_folder, name):
    with pytest.raises(NotPermittedError):
        user_folder.new_file(name, b"x")


def test_node_exists_is_exact(user_folder):
    user_folder.new_file("Contract_signed.pdf", b"x")
    assert user_folder.node_exists("Contract_signed.pdf")
    assert not user_folder.node_exists("Contract_signed_1.pdf")
    assert not user_folder.node_exists("Contract")


def test_get_missing_path(root, user_folder):
    with pytest.raises(NotFoundError):
        root.get("/alice/files/missing.pdf")


def test_get_parent(user_folder):
    docs = user_folder.new_folder("Docs")
    new_file = docs.new_file("a.pdf", b"x")
    assert new_file.get_parent().path == "/alice/files/Docs"


def test_deleted_node_no_longer_resolves(root, user_folder):
    new_file = user_folder.new_file("a.pdf", b"x")
    file_id = new_file.id

    new_file.delete()

    with pytest.raises(NotFoundError):
        root.get("/alice/files/a.pdf")
    assert root.get_by_id(file_id) == []


def test_file_removed_on_disk_is_not_found_by_id(root, user_folder):
    new_file = user_folder.new_file("a.pdf", b"x")
    new_file.local_path.unlink()
    assert root.get_by_id(new_file.id) == []


def test_get_by_id_is_limited_to_the_folder_subtree(root, user_folder):
    bob_file = root.get_user_folder("bob").new_file("b.pdf", b"x")

    assert user_folder.get_by_id(bob_file.id) == []
    assert len(root.get_user_folder("bob").get_by_id(bob_file.id)) == 1


def test_deleting_a_folder_forgets_its_children(root, user_folder):
    docs = user_folder.new_folder("Docs")
    child = docs.new_file("a.pdf", b"x")
    child_id = child.id

    docs.delete()

    assert root.get_by_id(child_id) == []


def test_name_at_the_length_limit_is_accepted(user_folder):
    name = "x" * (MAX_NAME_BYTES - 4) + ".pdf"
    assert user_folder.new_file(name, b"x").name == name


def test_already_existing_name_has_its_own_error(user_folder):
    user_folder.new_file("a.pdf", b"one")
    with pytest.raises(AlreadyExistsError):
        user_folder.new_file("a.pdf", b"two")


def test_failed_write_leaves_no_partial_file(user_folder, monkeypatch):
    class FullDisk:
        def __init__(self, handle):
            self.handle = handle

        def __enter__(self):
            return self

        def __exit__(self, *exc_info):
            self.handle.close()
            return False

        def write(self, content):
            self.handle.write(content[:1])
            raise OSError(28, "No space left on device")

    real_open = open
    monkeypatch.setattr("builtins.open", lambda *args, **kwargs: FullDisk(real_open(*args, **kwargs)))

    with pytest.raises(NotPermittedError) as exc_info:
        user_folder.new_file("a.pdf", b"%PDF-1.4")

    monkeypatch.undo()
    assert "No space left on device" in exc_info.value.message
    assert not user_folder.node_exists("a.pdf")
