import json
from pathlib import Path

from libgitlet.constants import HASH_LENGTH
from libgitlet.exceptions import BranchExistsError, CorruptStateError, CurrentBranchError, NoSuchBranchError
from libgitlet.objects import ContentHash, TrackedPath
from libgitlet.state import BranchTable, RepositoryState, StagingIndex, load_state, save_state
from pytest import raises

ROOT = ContentHash('0' * HASH_LENGTH)
OTHER = ContentHash('1' * HASH_LENGTH)
BLOB = ContentHash('2' * HASH_LENGTH)


def _state() -> RepositoryState:
    return RepositoryState(BranchTable({'master': ROOT}), 'master')


def test_staging_index_keeps_paths_in_one_set() -> None:
    index = StagingIndex()
    path = TrackedPath('f.txt')

    index.stage(path, BLOB)
    index.mark_removed(path)
    assert path not in index.additions
    assert index.removals == {path}

    index.stage(path, BLOB)
    assert index.additions == {path: BLOB}
    assert not index.removals


def test_staging_index_unstage_and_unmark() -> None:
    index = StagingIndex()
    path = TrackedPath('f.txt')

    assert not index.unstage(path)
    assert not index.unmark_removed(path)

    index.stage(path, BLOB)
    assert index.unstage(path)
    index.mark_removed(path)
    assert index.unmark_removed(path)
    assert index.is_empty()


def test_staging_index_clear() -> None:
    index = StagingIndex({TrackedPath('a'): BLOB}, {TrackedPath('b')})
    assert not index.is_empty()

    index.clear()
    assert index.is_empty()


def test_branch_table_create_and_delete() -> None:
    branches = BranchTable({'master': ROOT})

    branches.create('feature', OTHER)
    assert branches.names() == ['feature', 'master']
    assert branches.tip('feature') == OTHER

    branches.delete('feature', current='master')
    assert not branches.exists('feature')


def test_branch_table_errors() -> None:
    branches = BranchTable({'master': ROOT})

    with raises(ValueError, match='Branch name is required'):
        branches.create('', ROOT)
    with raises(BranchExistsError):
        branches.create('master', OTHER)
    with raises(NoSuchBranchError):
        branches.delete('missing', current='master')
    with raises(CurrentBranchError):
        branches.delete('master', current='master')
    with raises(NoSuchBranchError):
        branches.tip('missing')
    with raises(NoSuchBranchError):
        branches.move('missing', OTHER)


def test_head_follows_current_branch() -> None:
    state = _state()
    state.branches.create('feature', OTHER)

    assert state.head == ROOT
    state.advance(OTHER)
    assert state.head == OTHER
    assert state.branches.tip('master') == OTHER

    state.switch('feature')
    assert state.current_branch == 'feature'

    with raises(NoSuchBranchError):
        state.switch('missing')


def test_save_and_load_state(tmp_path: Path) -> None:
    state_file = tmp_path / 'state.json'
    state = _state()
    state.branches.create('feature', OTHER)
    state.index.stage(TrackedPath('a.txt'), BLOB)
    state.index.mark_removed(TrackedPath('b.txt'))

    save_state(state_file, state)
    loaded = load_state(state_file)

    assert loaded == state
    assert json.loads(state_file.read_text())['head'] == ROOT


def test_load_missing_state_raises_error(tmp_path: Path) -> None:
    with raises(CorruptStateError):
        load_state(tmp_path / 'missing.json')


def test_load_corrupted_state_raises_error(tmp_path: Path) -> None:
    state_file = tmp_path / 'state.json'

    state_file.write_text('not json')
    with raises(CorruptStateError):
        load_state(state_file)

    state_file.write_text('[]')
    with raises(CorruptStateError):
        load_state(state_file)

    state_file.write_text(json.dumps({'current_branch': 'master'}))
    with raises(CorruptStateError):
        load_state(state_file)


def test_load_inconsistent_state_raises_error(tmp_path: Path) -> None:
    state_file = tmp_path / 'state.json'
    payload = _state().to_dict()

    state_file.write_text(json.dumps({**payload, 'head': OTHER}))
    with raises(CorruptStateError):
        load_state(state_file)

    state_file.write_text(json.dumps({**payload, 'current_branch': 'missing'}))
    with raises(CorruptStateError):
        load_state(state_file)

    state_file.write_text(json.dumps({**payload, 'staged_additions': {'f': BLOB}, 'staged_removals': ['f']}))
    with raises(CorruptStateError):
        load_state(state_file)
