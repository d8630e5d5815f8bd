import io
import json
import os

from rich.console import Console
from potatodb import PotatoDB, console_printer, create_database


def test_database_layout(tmp_path):
    db = create_database("DB", root=str(tmp_path))
    assert os.path.isdir(tmp_path / "DB")

    users = db.create_farm("Users")
    assert users.path == str(tmp_path / "DB" / "Users.json")
    assert users.db_name == "DB"
    with open(users.path, encoding="utf-8") as f:
        assert json.load(f) == []
    assert db.farms == ["Users"]

    db.create_farm("Users")
    assert db.farms == ["Users"]


def test_reopen_keeps_or_overwrites(tmp_path):
    db = PotatoDB("DB", root=str(tmp_path))
    db.create_farm("Users").insert_one({"username": "Swordax"})

    again = PotatoDB("DB", root=str(tmp_path))
    assert again.create_farm("Users").count_potatoes() == 1

    fresh = PotatoDB("DB", root=str(tmp_path), overwrite=True)
    assert fresh.create_farm("Users").count_potatoes() == 0


def test_drop(tmp_path):
    db = PotatoDB("DB", root=str(tmp_path))
    users = db.create_farm("Users")
    posts = db.create_farm("Posts")

    posts.drop_farm()
    assert not os.path.exists(posts.path)
    assert os.path.exists(users.path)

    db.drop_database()
    assert not os.path.exists(tmp_path / "DB")
    assert db.farms == []
    db.drop_database()


def test_progress_events(tmp_path):
    events = []

    def collect(evt):
        events.append(evt.get("phase"))

    db = PotatoDB("DB", root=str(tmp_path), on_progress=collect)
    assert "open.done" in events
    users = db.create_farm("Users")

    events.clear()
    users.insert_many([{"n": 1}, {"n": 2}])
    assert events == ["insert_many.start", "insert_many.done"]

    events.clear()
    users.update_many({}, {"$inc": {"n": 1}})
    assert "update_many.start" in events and "update_many.done" in events

    events.clear()
    users.update_one({"n": 99}, {"n": 0})
    users.find_many()
    assert events == []

    events.clear()
    users.delete_one({"n": 2})
    assert events == ["delete_one.start", "delete_one.done"]


def test_console_printer(tmp_path):
    buf = io.StringIO()
    console = Console(file=buf, force_terminal=False, color_system=None, width=120)
    db = PotatoDB("DB", root=str(tmp_path), on_progress=console_printer(console))
    users = db.create_farm("Users")
    users.insert_one({"username": "Swordax"})

    out = buf.getvalue()
    assert "[progress] insert_one.done 100% - 1 potatoes" in out
    assert "insert_one.start" not in out
