#!/usr/bin/env python3
# Example usage of potatodb: insert, query, update, delete on one farm

import os
import random

from rich.console import Console
from potatodb import console_printer, create_database

console = Console()

NAMES = ["Swordax", "Vazox", "Alxa", "Swordy", "Swordia", "Alximia", "Naxos", "Poxia"]

def main() -> None:
    root = os.path.join(os.path.dirname(__file__), "databases")
    # overwrite=True resets every farm file on start
    db = create_database("DB", root=root, overwrite=True, on_progress=console_printer(console))
    users = db.create_farm("Users", identification=True, timestamps=True)

    users.insert_many([{"name": n, "age": random.randint(1, 22), "tags": []} for n in NAMES])

    adults = users.find_many({"age": {"$gte": 18}}, sort={"age": -1}, select={"name": 1, "age": 1})
    console.print("Adults:", adults.to_list())

    sw = users.find_many({"$or": [{"name": {"$in": ["Naxos", "Poxia"]}}, {"age": {"$lt": 5}}]})
    console.print("Naxos, Poxia or young:", [u["name"] for u in sw])

    before = users.update_one({"name": "Swordax"}, {"$inc": {"age": 1}, "$push": {"tags": "hero"}}, updated=False)
    after = users.find_one({"_id": before["_id"]})
    console.print(f"Swordax aged {before['age']} -> {after['age']}, tags {after['tags']}")

    removed = users.delete_many({"age": {"$lt": 10}}, select={"name": 1})
    console.print("Removed:", removed.to_list())
    console.print("Left:", users.count_potatoes(), "sample:", users.sample_one())

if __name__ == "__main__":
    main()
