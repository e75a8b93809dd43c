"""Constants used across libgitlet."""

DEFAULT_REPO_DIR = '.gitlet'
DEFAULT_BRANCH = 'master'

BLOBS_SUBDIR = 'blobs'
COMMITS_SUBDIR = 'commits'
STATE_FILE = 'state.json'

HASH_LENGTH = 40
HASH_CHARSET = '0123456789abcdef'

INITIAL_COMMIT_MESSAGE = 'initial commit'
# The root commit carries the epoch as its timestamp, meaning "no history"
INITIAL_COMMIT_TIMESTAMP = 0

MERGE_MESSAGE_TEMPLATE = 'Merged {given} into {current}.'

CONFLICT_START = b'<<<<<<< HEAD\n'
CONFLICT_SEPARATOR = b'=======\n'
CONFLICT_END = b'>>>>>>>\n'

ENCODING = 'utf-8'
