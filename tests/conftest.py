import os
import sqlite3
import stat
import sys
import textwrap
from pathlib import Path

import pytest

from plexdbrepair.constants import DATABASE_NAME, DATABASE_SUBPATH

# Stand-in for `Plex SQLite`: same argv contract, backed by the stdlib sqlite3 module.
FAKE_PLEX_SQLITE = textwrap.dedent(
    """\
    import shlex
    import sqlite3
    import sys

    db_path, statements = sys.argv[1], sys.argv[2:]
    conn = sqlite3.connect(db_path, isolation_level=None)
    output = sys.stdout
    try:
        for statement in statements:
            if statement.startswith("."):
                command, *args = shlex.split(statement)
                if command == ".output":
                    output = open(args[0], "w", encoding="utf-8")
                elif command == ".dump":
                    for line in conn.iterdump():
                        output.write(line + "\\n")
                elif command == ".read":
                    with open(args[0], "r", encoding="utf-8") as script:
                        conn.executescript(script.read())
                continue
            for row in conn.execute(statement):
                output.write("|".join(str(col) for col in row) + "\\n")
    except sqlite3.DatabaseError as exc:
        sys.stderr.write(f"Error: {exc}\\n")
        sys.exit(1)
    finally:
        if output is not sys.stdout:
            output.close()
        conn.close()
    """
)


def make_database(path: Path):
    conn = sqlite3.connect(str(path))
    conn.execute("CREATE TABLE metadata_items (id INTEGER PRIMARY KEY, title TEXT)")
    conn.execute("CREATE INDEX idx_title ON metadata_items (title)")
    conn.executemany(
        "INSERT INTO metadata_items (title) VALUES (?)",
        [("Alien",), ("Heat",), ("Ran",)],
    )
    conn.commit()
    conn.close()


@pytest.fixture
def plex_config_root(tmp_path):
    """A Plex config root holding a small valid library database."""
    root = tmp_path / "plexmediaserver"
    database_dir = root / DATABASE_SUBPATH
    database_dir.mkdir(parents=True)
    make_database(database_dir / DATABASE_NAME)
    return root


@pytest.fixture
def fake_plex_sqlite(tmp_path):
    script = tmp_path / "bin" / "fake_plex_sqlite.py"
    script.parent.mkdir()
    script.write_text(FAKE_PLEX_SQLITE, encoding="utf-8")

    wrapper = tmp_path / "bin" / "Plex SQLite"
    wrapper.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n', encoding="utf-8")
    os.chmod(wrapper, os.stat(wrapper).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return wrapper
