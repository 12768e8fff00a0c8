"""File helpers shared by the storage strategies."""
import os
import stat
import tempfile
from contextlib import contextmanager
from typing import Iterator, Union


def temp_path_for(path: str) -> str:
    """Create an empty temporary file next to ``path`` and return its name."""
    directory = os.path.dirname(os.path.abspath(path))
    handle, temp_path = tempfile.mkstemp(prefix=f".{os.path.basename(path)}.", suffix='.tmp', dir=directory)
    os.close(handle)
    return temp_path


def target_mode(path: str) -> int:
    """Permission bits the replacement of ``path`` should carry: the existing file's, else 0666 less the umask."""
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


@contextmanager
def replacing(path: str) -> Iterator[str]:
    """
    Yield a temporary path that replaces ``path`` when the block completes.

    The replacement keeps the mode of the file it replaces, or gets the
    default mode for a new file. On any exception the temporary file is
    removed and ``path`` is left untouched.
    """
    temp_path = temp_path_for(path)
    try:
        yield temp_path
        os.chmod(temp_path, target_mode(path))
        os.replace(temp_path, path)
    finally:
        if os.path.exists(temp_path):
            os.remove(temp_path)


def write_atomic(path: str, payload: Union[str, bytes]):
    data = payload.encode('utf-8') if isinstance(payload, str) else payload
    with replacing(path) as temp_path:
        with open(temp_path, 'wb') as file:
            file.write(data)
            file.flush()
            os.fsync(file.fileno())


def read_bytes(path: str) -> bytes:
    with open(path, 'rb') as file:
        return file.read()
