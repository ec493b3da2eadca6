"""Edit application, undo/redo and diffs."""

from nextedit.executor.diff import FileDiff, combine_diffs, render_block_diff
from nextedit.executor.executor import (
    ApplyEditResult,
    BulkApplyResult,
    EditExecutor,
    FailedEdit,
    create_executor,
    replace_block,
)
from nextedit.executor.file_store import (
    FileStore,
    InMemoryFileStore,
    LocalFileStore,
    create_file_store,
    decode_text,
    encode_text,
)

__all__ = [
    # Executor
    "EditExecutor",
    "ApplyEditResult",
    "BulkApplyResult",
    "FailedEdit",
    "create_executor",
    "replace_block",
    # Diffs
    "FileDiff",
    "render_block_diff",
    "combine_diffs",
    # File stores
    "FileStore",
    "LocalFileStore",
    "InMemoryFileStore",
    "create_file_store",
    "decode_text",
    "encode_text",
]
