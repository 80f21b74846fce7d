from concurrent.futures import ThreadPoolExecutor

import pytest

from campus_assistant.errors import DocumentNotFound, EmptyOrLowContentDocument
from campus_assistant.store.document_store import DocumentStore

TEXT_ONE = "The library opens at eight and closes at ten on weekdays for all students."
TEXT_TWO = "Exam halls open thirty minutes early and phones must be left at the entrance."


def test_get_resolves_id_and_alias() -> None:
    store = DocumentStore()
    store.put("D1", "F1.txt", TEXT_ONE)

    assert store.get("D1").text == TEXT_ONE
    assert store.get("F1.txt").text == TEXT_ONE
    assert store.list_names() == ["F1.txt"]


def test_unknown_key_lists_known_names() -> None:
    store = DocumentStore()
    store.put("D1", "F1.txt", TEXT_ONE)

    with pytest.raises(DocumentNotFound) as excinfo:
        store.get("missing.pdf")

    assert excinfo.value.known_names == ["F1.txt"]


def test_reupload_replaces_document() -> None:
    store = DocumentStore()
    store.put("D1", "F1.txt", TEXT_ONE)
    store.put("D1", "F1.txt", TEXT_TWO)

    assert store.get("D1").text == TEXT_TWO
    assert store.get("F1.txt").text == TEXT_TWO
    assert len(store) == 1


def test_id_match_wins_over_alias_match() -> None:
    store = DocumentStore()
    store.put("D1", "report.pdf", TEXT_ONE)
    store.put("report.pdf", "other.txt", TEXT_TWO)

    assert store.get("report.pdf").text == TEXT_TWO
    assert store.get("D1").text == TEXT_ONE


@pytest.mark.parametrize("text", ["", "   \n\t ", "one two three four five six seven eight nine"])
def test_low_content_is_rejected(text: str) -> None:
    store = DocumentStore()

    with pytest.raises(EmptyOrLowContentDocument) as excinfo:
        store.put("D1", "scan.pdf", text)

    assert excinfo.value.word_count < 10
    assert "D1" not in store
    assert "scan.pdf" not in store


def test_ten_tokens_is_enough() -> None:
    store = DocumentStore()
    document = store.put("D1", "ten.txt", "one two  three\nfour five six seven eight nine ten")

    assert document.word_count == 10
    assert document.char_count == len("one two  three\nfour five six seven eight nine ten")


def test_concurrent_puts_are_all_visible() -> None:
    store = DocumentStore()

    def _put(i: int) -> None:
        store.put(f"doc-{i}", f"file-{i}.txt", f"{TEXT_ONE} number {i}")

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(_put, range(50)))

    assert len(store) == 50
    for i in range(50):
        assert store.get(f"file-{i}.txt").id == f"doc-{i}"


def test_reupload_under_new_name_drops_old_alias() -> None:
    store = DocumentStore()
    store.put("D1", "old.txt", TEXT_ONE)
    store.put("D1", "new.txt", TEXT_TWO)

    assert store.list_names() == ["new.txt"]
    assert store.get("new.txt").text == TEXT_TWO
    with pytest.raises(DocumentNotFound) as excinfo:
        store.get("old.txt")
    assert excinfo.value.known_names == ["new.txt"]


def test_rename_keeps_alias_claimed_by_another_document() -> None:
    store = DocumentStore()
    store.put("D1", "shared.txt", TEXT_ONE)
    store.put("D2", "shared.txt", TEXT_TWO)
    store.put("D1", "renamed.txt", TEXT_ONE)

    assert store.get("shared.txt").id == "D2"
    assert store.list_names() == ["renamed.txt", "shared.txt"]
