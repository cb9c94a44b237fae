import pytest

from urltree.errors import MalformedUrlError
from urltree.tree.builder import TreeBuilder, build_tree
from urltree.tree.decompose import decompose_url
from urltree.tree.models import Item


def test_end_to_end_example():
    items = [
        Item(fileUrl="https://ex.com/docs/readme.txt"),
        Item(fileUrl="https://ex.com/docs/"),
        Item(fileUrl="https://ex.com/img.png"),
    ]
    assert build_tree(items) == {"ex.com": [{"docs": ["readme.txt"]}, "img.png"]}


def test_duplicate_urls_are_idempotent():
    urls = ["https://h/a/b.txt", "https://h/a/", "https://h/c.txt"]
    assert build_tree(urls + urls) == build_tree(urls)
    assert build_tree(["https://h/a/b.txt", "https://h/a/b.txt"]) == {"h": [{"a": ["b.txt"]}]}


def test_first_seen_order_is_preserved():
    tree = build_tree(["https://h/b/1", "https://h/a/2", "https://h/b/3", "https://h/0"])
    assert tree == {"h": [{"b": ["1", "3"]}, {"a": ["2"]}, "0"]}


def test_file_and_directory_disambiguation():
    assert build_tree(["https://h/a/b"]) == {"h": [{"a": ["b"]}]}
    assert build_tree(["https://h/a/b/"]) == {"h": [{"a": [{"b": []}]}]}


def test_decoded_names_in_tree():
    assert build_tree(["https://h/a%20b/c"]) == {"h": [{"a b": ["c"]}]}


def test_multiple_hosts_are_root_siblings():
    tree = build_tree(["https://h1/x", "https://h2/y", "https://h1/z"])
    assert list(tree) == ["h1", "h2"]
    assert tree == {"h1": ["x", "z"], "h2": ["y"]}


def test_host_only_url_creates_empty_root():
    assert build_tree(["https://h", "https://h/"]) == {"h": []}


def test_directory_listed_after_its_children_is_not_duplicated():
    tree = build_tree(["https://h/a/b/c.txt", "https://h/a/", "https://h/a/b/"])
    assert tree == {"h": [{"a": [{"b": ["c.txt"]}]}]}


def test_file_and_directory_with_same_name_coexist():
    tree = build_tree(["https://h/foo", "https://h/foo/", "https://h/foo/bar"])
    assert tree == {"h": ["foo", {"foo": ["bar"]}]}


def test_malformed_url_aborts_the_build():
    with pytest.raises(MalformedUrlError):
        build_tree(["https://h/a", "no scheme here"])


def test_builder_accepts_decomposed_paths():
    builder = TreeBuilder()
    builder.add(decompose_url("https://h/a/b"))
    builder.add(decompose_url("https://h/a/c/"))
    assert builder.tree == {"h": [{"a": ["b", {"c": []}]}]}


def test_item_accepts_field_name_and_alias():
    assert Item(fileUrl="https://h/a").file_url == Item(file_url="https://h/a").file_url
