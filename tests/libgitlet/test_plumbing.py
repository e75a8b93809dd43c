from pathlib import Path

from libgitlet.constants import HASH_LENGTH
from libgitlet.exceptions import AmbiguousObjectError, CorruptObjectError, ObjectNotFoundError
from libgitlet.objects import Commit, ContentHash, TrackedPath
from libgitlet.plumbing import (ObjectStore, deserialize_commit, hash_bytes, hash_file, load_commit, save_blob,
                                save_commit, serialize_commit)
from pytest import fixture, raises


@fixture
def store(tmp_path: Path) -> ObjectStore:
    root = tmp_path / 'objects'
    root.mkdir()
    return ObjectStore(root)


def test_hash_bytes_is_sha1() -> None:
    assert hash_bytes(b'1') == '356a192b7913b04c54574d18c28d46e6395428ab'
    assert len(hash_bytes(b'')) == HASH_LENGTH


def test_put_and_get(store: ObjectStore) -> None:
    object_hash = store.put(b'hello')

    assert object_hash == hash_bytes(b'hello')
    assert store.get(object_hash) == b'hello'
    assert (store.root / object_hash).is_file()


def test_put_is_idempotent(store: ObjectStore) -> None:
    first = store.put(b'same bytes')
    second = store.put(b'same bytes')

    assert first == second
    assert list(store) == [first]


def test_get_missing_object_raises_error(store: ObjectStore) -> None:
    with raises(ObjectNotFoundError):
        store.get('0' * HASH_LENGTH)


def test_contains(store: ObjectStore) -> None:
    object_hash = store.put(b'data')

    assert object_hash in store
    assert 'f' * HASH_LENGTH not in store


def test_iteration_skips_foreign_files(store: ObjectStore) -> None:
    object_hash = store.put(b'data')
    (store.root / '.tmpfile').write_bytes(b'junk')
    (store.root / 'README').write_bytes(b'junk')

    assert list(store) == [object_hash]


def test_resolve_prefix(store: ObjectStore) -> None:
    object_hash = store.put(b'content')

    assert store.resolve_prefix(object_hash[:6]) == object_hash
    assert store.resolve_prefix(object_hash) == object_hash
    assert store.resolve_prefix(object_hash[:6].upper()) == object_hash


def test_resolve_prefix_not_found(store: ObjectStore) -> None:
    object_hash = store.put(b'content')
    other_prefix = '0' if object_hash[0] != '0' else '1'

    with raises(ObjectNotFoundError):
        store.resolve_prefix(other_prefix)

    with raises(ObjectNotFoundError):
        store.resolve_prefix('not-hex')

    with raises(ObjectNotFoundError):
        store.resolve_prefix('')


def test_resolve_prefix_ambiguous(store: ObjectStore) -> None:
    first = 'ab' + '0' * (HASH_LENGTH - 2)
    second = 'ab' + '1' * (HASH_LENGTH - 2)
    (store.root / first).write_bytes(b'one')
    (store.root / second).write_bytes(b'two')

    with raises(AmbiguousObjectError):
        store.resolve_prefix('ab')

    assert store.resolve_prefix('ab0') == first
    assert store.resolve_prefix(second) == second


def test_identical_content_is_stored_once(store: ObjectStore, tmp_path: Path) -> None:
    file1 = tmp_path / 'one.txt'
    file2 = tmp_path / 'two.txt'
    file1.write_text('shared content')
    file2.write_text('shared content')

    blob1 = save_blob(store, file1.read_bytes())
    blob2 = save_blob(store, file2.read_bytes())

    assert blob1.hash == blob2.hash == hash_file(file1)
    assert len(list(store)) == 1


def test_commit_serialization_is_canonical() -> None:
    tree = {TrackedPath('b.txt'): ContentHash('2' * HASH_LENGTH), TrackedPath('a.txt'): ContentHash('1' * HASH_LENGTH)}
    reordered = dict(reversed(list(tree.items())))

    commit1 = Commit('message', 100, ContentHash('3' * HASH_LENGTH), None, tree)
    commit2 = Commit('message', 100, ContentHash('3' * HASH_LENGTH), None, reordered)

    assert serialize_commit(commit1) == serialize_commit(commit2)


def test_commit_round_trip(store: ObjectStore) -> None:
    parent = ContentHash('a' * HASH_LENGTH)
    merge_parent = ContentHash('b' * HASH_LENGTH)
    commit = Commit('Merged x into y.', 1700000000, parent, merge_parent,
                    {TrackedPath('f.txt'): ContentHash('c' * HASH_LENGTH)})

    commit_ref = save_commit(store, commit)
    loaded = load_commit(store, commit_ref)

    assert loaded == commit
    assert loaded.is_merge
    assert loaded.parents() == [parent, merge_parent]
    assert commit_ref == hash_bytes(serialize_commit(loaded))


def test_identical_commits_share_identity(store: ObjectStore) -> None:
    assert save_commit(store, Commit.initial()) == save_commit(store, Commit.initial())
    assert len(list(store)) == 1


def test_commit_tree_is_read_only() -> None:
    commit = Commit('message', 1, tree={TrackedPath('f'): ContentHash('a' * HASH_LENGTH)})

    with raises(TypeError):
        commit.tree[TrackedPath('g')] = ContentHash('b' * HASH_LENGTH)  # type: ignore[index]


def test_deserialize_corrupted_commit_raises_error() -> None:
    with raises(CorruptObjectError):
        deserialize_commit(b'corrupted commit data')

    with raises(CorruptObjectError):
        deserialize_commit(b'[1, 2, 3]')

    with raises(CorruptObjectError):
        deserialize_commit(b'{"message": "missing fields"}')


def test_tracked_path_normalizes_and_rejects_nested_paths() -> None:
    assert TrackedPath('./file.txt') == 'file.txt'

    for bad in ('', '.', '..', '../outside.txt', '/etc/passwd', 'dir/file.txt', 'dir\\file.txt'):
        with raises(ValueError):
            TrackedPath(bad)


def test_deserialize_commit_with_nested_path_raises_error() -> None:
    blob = 'a' * HASH_LENGTH
    data = f'{{"merge_parent":null,"message":"m","parent":null,"timestamp":0,"tree":{{"sub/x.txt":"{blob}"}}}}'

    with raises(CorruptObjectError):
        deserialize_commit(data.encode())
