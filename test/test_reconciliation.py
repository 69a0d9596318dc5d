from unittest.mock import MagicMock

import pytest

from app.files.exceptions import AlreadyExistsError, NotPermittedError
from app.files.storage import Folder
from app.signd.exceptions import (
    ERROR_STORAGE,
    FilenameCollisionException,
    ProcessNotFoundException,
    SigndUnreachableException,
    StorageException,
)
from app.signd.reconciliation import MAX_FILENAME_PROBES, DownloadReconciler, find_free_filename

SIGNED_PDF = b"%PDF-1.7 signed"


@pytest.fixture
def reconciler(repo, signd_client, root):
    signd_client.get_finished_pdf.return_value = SIGNED_PDF
    return DownloadReconciler(repo, signd_client, root)


@pytest.fixture
def docs(user_folder):
    return user_folder.new_folder("Docs")


def test_cached_file_is_returned_without_upstream_call(reconciler, signd_client, user_folder, make_process):
    existing = user_folder.new_file("doc_signed.pdf", b"old")
    make_process(finished_pdf_path="/alice/files/doc_signed.pdf")

    result = reconciler.resolve_download("p-1", "alice", "doc.pdf")

    assert result.cached is True
    assert result.path == "/alice/files/doc_signed.pdf"
    assert result.file_id == existing.id
    assert result.target_dir_missing is None
    signd_client.get_finished_pdf.assert_not_called()


def test_first_download_saves_next_to_source(reconciler, repo, signd_client, docs, make_process):
    make_process(target_dir=docs.path)

    result = reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert result.cached is False
    assert result.path == "/alice/files/Docs/contract_signed.pdf"
    assert result.name == "contract_signed.pdf"
    assert result.size == len(SIGNED_PDF)
    assert docs.get("contract_signed.pdf").get_content() == SIGNED_PDF
    assert repo.find_by_process_id("p-1").finished_pdf_path == result.path
    signd_client.get_finished_pdf.assert_called_once_with("p-1")


def test_deleted_cached_file_is_downloaded_to_a_new_path(reconciler, repo, signd_client, docs, make_process):
    stale_path = "/alice/files/Docs/contract_signed.pdf"
    make_process(target_dir=docs.path, finished_pdf_path=stale_path)

    result = reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert result.cached is False
    assert result.path != stale_path
    assert result.path == "/alice/files/Docs/contract_signed_1.pdf"
    assert repo.find_by_process_id("p-1").finished_pdf_path == result.path
    signd_client.get_finished_pdf.assert_called_once_with("p-1")


def test_stale_name_in_another_folder_is_not_reserved(reconciler, docs, make_process):
    make_process(target_dir=docs.path, finished_pdf_path="/alice/files/contract_signed.pdf")

    result = reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert result.path == "/alice/files/Docs/contract_signed.pdf"


def test_find_free_filename_skips_reserved_names(docs):
    assert find_free_filename(docs, "a.pdf", taken={"a_signed.pdf"}) == "a_signed_1.pdf"


def test_name_taken_meanwhile_is_probed_again(reconciler, docs, make_process, monkeypatch):
    make_process(target_dir=docs.path)
    original_new_file = Folder.new_file
    raced = []

    def racing_new_file(self, name, content):
        if not raced:
            raced.append(name)
            original_new_file(self, name, b"written by another request")
        return original_new_file(self, name, content)

    monkeypatch.setattr(Folder, "new_file", racing_new_file)

    result = reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert raced == ["contract_signed.pdf"]
    assert result.name == "contract_signed_1.pdf"
    assert docs.get("contract_signed_1.pdf").get_content() == SIGNED_PDF


def test_repeatedly_lost_name_race_is_a_collision(reconciler, repo, docs, make_process, monkeypatch):
    make_process(target_dir=docs.path)

    def always_taken(self, name, content):
        raise AlreadyExistsError(f"{self.path}/{name}")

    monkeypatch.setattr(Folder, "new_file", always_taken)

    with pytest.raises(FilenameCollisionException) as exc_info:
        reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert exc_info.value.status_code == 409
    assert repo.find_by_process_id("p-1").finished_pdf_path is None


def test_second_download_uses_the_cache(reconciler, signd_client, docs, make_process):
    make_process(target_dir=docs.path)

    first = reconciler.resolve_download("p-1", "alice", "contract.pdf")
    second = reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert second.cached is True
    assert second.path == first.path
    assert signd_client.get_finished_pdf.call_count == 1


def test_collision_probes_for_the_next_free_name(reconciler, docs, make_process):
    docs.new_file("a_signed.pdf", b"1")
    docs.new_file("a_signed_1.pdf", b"2")
    make_process(target_dir=docs.path)

    result = reconciler.resolve_download("p-1", "alice", "a.pdf")

    assert result.name == "a_signed_2.pdf"
    assert docs.get("a_signed.pdf").get_content() == b"1"


def test_find_free_filename_is_idempotent(docs):
    docs.new_file("a_signed.pdf", b"1")
    docs.new_file("a_signed_1.pdf", b"2")

    assert find_free_filename(docs, "a.pdf") == "a_signed_2.pdf"
    assert find_free_filename(docs, "a.pdf") == "a_signed_2.pdf"


def test_find_free_filename_gives_up_eventually():
    folder = MagicMock(spec=Folder)
    folder.path = "/alice/files"
    folder.node_exists.return_value = True

    with pytest.raises(FilenameCollisionException) as exc_info:
        find_free_filename(folder, "a.pdf")

    assert exc_info.value.status_code == 409
    assert folder.node_exists.call_count == MAX_FILENAME_PROBES + 1


def test_missing_target_folder_falls_back_to_user_root(reconciler, make_process, user_folder):
    make_process(target_dir="/alice/files/Gone")

    result = reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert result.path == "/alice/files/contract_signed.pdf"
    assert result.target_dir_missing is True
    assert result.cached is False


def test_unset_target_folder_falls_back_to_user_root(reconciler, make_process):
    make_process(target_dir=None)

    result = reconciler.resolve_download("p-1", "alice", None)

    assert result.path == "/alice/files/document_signed.pdf"
    assert result.target_dir_missing is True


def test_storage_error_is_reported_as_insufficient_storage(
    reconciler, repo, docs, make_process, monkeypatch
):
    make_process(target_dir=docs.path)

    def disk_full(self, name, content):
        raise NotPermittedError(f"{self.path}/{name}", "No space left on device")

    monkeypatch.setattr(Folder, "new_file", disk_full)

    with pytest.raises(StorageException) as exc_info:
        reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert exc_info.value.status_code == 507
    assert exc_info.value.error_code == ERROR_STORAGE
    assert repo.find_by_process_id("p-1").finished_pdf_path is None


def test_unknown_process_does_not_call_upstream(reconciler, signd_client):
    with pytest.raises(ProcessNotFoundException):
        reconciler.resolve_download("missing", "alice", "contract.pdf")
    signd_client.get_finished_pdf.assert_not_called()


def test_upstream_failure_leaves_record_untouched(reconciler, repo, signd_client, docs, make_process):
    make_process(target_dir=docs.path)
    signd_client.get_finished_pdf.side_effect = SigndUnreachableException("timed out")

    with pytest.raises(SigndUnreachableException):
        reconciler.resolve_download("p-1", "alice", "contract.pdf")

    assert repo.find_by_process_id("p-1").finished_pdf_path is None
    assert not docs.node_exists("contract_signed.pdf")
