"""
Label chunker tests
"""
import pytest

from platecore.ui_logic.label_chunker import chunk_label


def test_default_chunk_size_is_ten():
    name = "主变压器差动保护投入控制压板"
    assert chunk_label(name) == ["主变压器差动保护投入", "控制压板"]


def test_exact_multiple_has_no_empty_tail():
    assert chunk_label("abcdef", 3) == ["abc", "def"]


def test_empty_name():
    assert chunk_label("") == []


def test_short_name_single_chunk():
    assert chunk_label("母线", 10) == ["母线"]


def test_invalid_chunk_size():
    with pytest.raises(ValueError):
        chunk_label("abc", 0)
