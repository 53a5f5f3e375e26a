import json
import os
import tempfile
from datetime import datetime, timezone
from decimal import Decimal


def format_units(value: int, decimals: int, precision: int = 2) -> str:
    """Format an integer token amount with thousands separators, e.g. 1234.5e18 -> '1,234.50'"""
    amount = Decimal(int(value)).scaleb(-decimals)
    return f"{amount:,.{precision}f}"


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


def load_json(path):
    with open(path, 'r') as f:
        return json.load(f)


def _stage(path, content: str) -> str:
    """Dump content to a synced temp file next to `path` and return the temp path"""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.tmp-')
    try:
        with os.fdopen(fd, 'w') as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
    except BaseException:
        os.unlink(tmp_path)
        raise
    return tmp_path


def _serialize(data, indent=2) -> str:
    return data if isinstance(data, str) else json.dumps(data, indent=indent)


def write_json(path, data, indent=2):
    """
    Write JSON atomically: dump to a temp file in the same directory, then rename over the target.

    A reader (or a crashed writer) never sees a half-written file.
    """
    os.replace(_stage(path, json.dumps(data, indent=indent)), path)


def write_text(path, text):
    os.replace(_stage(path, text), path)


def write_files(files):
    """
    Write a set of output files that must stay consistent with each other.

    Every file is dumped to a temp first; nothing is renamed into place until
    all dumps succeed. Renames run in the given order, so put the file that
    marks the set as complete last.

    Args:
        files: (path, data) pairs. str data is written as-is, anything else as JSON.
    """
    staged = []
    try:
        for path, data in files:
            staged.append((_stage(path, _serialize(data)), path))
    except BaseException:
        for tmp_path, _ in staged:
            os.unlink(tmp_path)
        raise

    for tmp_path, path in staged:
        os.replace(tmp_path, path)
