import json
import re

import pytest
import potatodb.stamps as stamps
from potatodb import PotatoArray, PotatoDB, StorageError, ValidationError


def make_farm(tmp_path, name="Users", **flags):
    db = PotatoDB("DB", root=str(tmp_path))
    return db.create_farm(name, **flags)


def test_insert_one_stamps_and_round_trips(tmp_path):
    users = make_farm(tmp_path)
    doc = {"username": "Swordax", "email": "swordax@example.com", "age": 25}

    user = users.insert_one(doc)
    assert re.fullmatch(r"[0-9a-f]{32}", user["_id"])
    assert user["createdAt"] == user["updatedAt"]
    assert "_id" not in doc

    found = users.find_one({"_id": user["_id"]})
    assert found == user
    assert {k: v for k, v in found.items() if k not in ("_id", "createdAt", "updatedAt")} == doc


def test_flags_disable_stamps(tmp_path):
    plain = make_farm(tmp_path, "Plain", identification=False, timestamps=False)
    assert plain.insert_one({"a": 1}) == {"a": 1}

    only_ts = make_farm(tmp_path, "OnlyTs", identification=False)
    got = only_ts.insert_one({"a": 1})
    assert "_id" not in got and "createdAt" in got


def test_insert_many_keeps_order_and_unique_ids(tmp_path):
    users = make_farm(tmp_path)
    inserted = users.insert_many([{"n": i} for i in range(20)])
    assert isinstance(inserted, PotatoArray)
    assert len(inserted) == 20
    assert len({u["_id"] for u in inserted}) == 20
    assert [u["n"] for u in users.find_many()] == list(range(20))

    with open(users.path, encoding="utf-8") as f:
        stored = json.load(f)
    assert [u["n"] for u in stored] == list(range(20))


def test_insert_arity_is_validated(tmp_path):
    users = make_farm(tmp_path)
    with pytest.raises(ValidationError):
        users.insert_one([{"a": 1}])
    with pytest.raises(ValidationError):
        users.insert_many({"a": 1})
    with pytest.raises(ValidationError):
        users.insert_many([{"a": 1}, "b"])
    assert users.count_potatoes() == 0


def test_find_one_not_found_is_none(tmp_path):
    users = make_farm(tmp_path)
    users.insert_one({"username": "Swordax", "age": 25})
    assert users.find_one({"age": {"$gte": 20}})["username"] == "Swordax"
    assert users.find_one({"age": 99}) is None
    assert users.find_many({"age": 99}) == []


def test_update_returns_snapshots(tmp_path):
    users = make_farm(tmp_path)
    user = users.insert_one({"username": "Swordax", "age": 25})

    before = users.update_one({"_id": user["_id"]}, {"age": 26}, updated=False)
    assert before["age"] == 25
    after = users.update_one({"_id": user["_id"]}, {"$inc": {"age": 1}})
    assert after["age"] == 27
    assert users.find_one({"_id": user["_id"]})["age"] == 27

    after["age"] = 1000
    assert users.find_one({"_id": user["_id"]})["age"] == 27


def test_update_keeps_id_and_refreshes_updated_at(tmp_path, monkeypatch):
    users = make_farm(tmp_path)
    monkeypatch.setattr(stamps, "now_ms", lambda: 1000)
    user = users.insert_one({"username": "Swordax"})

    monkeypatch.setattr(stamps, "now_ms", lambda: 2000)
    got = users.update_one({"username": "Swordax"}, {"_id": "hijack", "username": "Vazox"})
    assert got["_id"] == user["_id"]
    assert got["createdAt"] == 1000
    assert got["updatedAt"] == 2000
    assert users.find_one({"_id": "hijack"}) is None

    monkeypatch.setattr(stamps, "now_ms", lambda: 3000)
    assert users.update_one({"username": "nobody"}, {"age": 1}) is None
    assert users.find_one({"_id": user["_id"]})["updatedAt"] == 2000


def test_update_many_and_functional_update(tmp_path):
    users = make_farm(tmp_path)
    users.insert_many([
        {"username": "User1", "age": 22, "token": 0},
        {"username": "User2", "age": 22, "token": 0},
        {"username": "User3", "age": 40, "token": 0},
    ])

    changed = users.update_many({"age": 22}, {"$inc": {"age": 1}})
    assert len(changed) == 2
    assert len(users.find_many({"age": 23})) == 2

    def give_token(user):
        user["token"] = 7

    users.update_one({"username": "User3"}, give_token)
    assert users.find_one({"username": "User3"})["token"] == 7
    assert users.update_many({"age": 99}, {"age": 1}) == []


def test_delete(tmp_path):
    users = make_farm(tmp_path)
    users.insert_many([
        {"username": "User1", "age": 22},
        {"username": "User2", "age": 30},
        {"username": "User3", "age": 22},
        {"username": "User4", "age": 22},
    ])

    removed = users.delete_one({"age": 22})
    assert removed["username"] == "User1"
    assert users.delete_one({"age": 99}) is None

    removed = users.delete_many({"age": 22})
    assert [u["username"] for u in removed] == ["User3", "User4"]
    assert [u["username"] for u in users.find_many()] == ["User2"]

    users.delete_many({})
    assert users.count_potatoes() == 0


def test_exists_and_count(tmp_path):
    users = make_farm(tmp_path)
    users.insert_many([
        {"username": "User1", "age": 20, "email": "u1@example.com"},
        {"username": "User2", "age": 22},
        {"username": "User3", "age": 20},
    ])
    assert users.exists({"email": "u1@example.com"}) is True
    assert users.exists({"email": "nobody@example.com"}) is False
    assert users.count_potatoes({"age": 20}) == 2
    assert users.count_potatoes() == 3


def test_sampling(tmp_path):
    users = make_farm(tmp_path)
    assert users.sample_one() is None
    assert users.sample_many(3) == []

    users.insert_many([{"n": i} for i in range(5)])
    assert users.sample_one()["n"] in range(5)
    assert len(users.sample_many(7)) == 7

    unique = users.sample_many_unique(3)
    assert len({u["_id"] for u in unique}) == 3
    capped = users.sample_many_unique(10)
    assert len(capped) == 5
    assert len({u["_id"] for u in capped}) == 5

    with pytest.raises(ValidationError):
        users.sample_many(-1)


def test_bad_arguments(tmp_path):
    users = make_farm(tmp_path)
    with pytest.raises(ValidationError, match="find_one"):
        users.find_one(5)
    with pytest.raises(ValidationError):
        users.update_one({}, 5)
    with pytest.raises(ValidationError):
        users.find_one({}, limit=1)
    with pytest.raises(ValidationError):
        users.find_many({}, skip=-1)


def test_storage_errors(tmp_path):
    users = make_farm(tmp_path)
    with open(users.path, "w", encoding="utf-8") as f:
        f.write("{not json")
    with pytest.raises(StorageError):
        users.find_many()

    with open(users.path, "w", encoding="utf-8") as f:
        f.write('{"a": 1}')
    with pytest.raises(StorageError):
        users.count_potatoes()

    with open(users.path, "w", encoding="utf-8") as f:
        f.write("[]")
    with pytest.raises(StorageError):
        users.insert_one({"when": object()})

    users.drop_farm()
    with pytest.raises(StorageError):
        users.find_one()
    with pytest.raises(StorageError):
        users.drop_farm()


def test_failed_nested_update_leaves_file_untouched(tmp_path):
    users = make_farm(tmp_path)
    users.insert_one({"username": "Swordax", "a": 5})
    with pytest.raises(ValidationError):
        users.update_one({}, {"$inc": {"a.b": 1}})
    assert users.find_one({"username": "Swordax"})["a"] == 5
