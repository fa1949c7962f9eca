from __future__ import annotations

from pastebin_lite.domain.ids import (
    PASTE_ID_ALPHABET,
    PASTE_ID_LENGTH,
    generate_paste_id,
    is_valid_paste_id,
)


def test_alphabet_has_62_distinct_symbols() -> None:
    assert len(PASTE_ID_ALPHABET) == 62
    assert len(set(PASTE_ID_ALPHABET)) == 62
    assert PASTE_ID_ALPHABET.isalnum()


def test_generated_ids_have_fixed_length_and_alphabet() -> None:
    for _ in range(200):
        paste_id = generate_paste_id()
        assert len(paste_id) == PASTE_ID_LENGTH == 10
        assert set(paste_id) <= set(PASTE_ID_ALPHABET)


def test_generated_ids_do_not_repeat() -> None:
    ids = {generate_paste_id() for _ in range(1000)}
    assert len(ids) == 1000


def test_is_valid_paste_id() -> None:
    assert is_valid_paste_id("aZ09aZ09aZ")
    assert not is_valid_paste_id("short")
    assert not is_valid_paste_id("aZ09aZ09a-")
    assert not is_valid_paste_id("aZ09aZ09aZ0")
