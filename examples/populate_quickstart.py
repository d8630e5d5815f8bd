#!/usr/bin/env python3
# Example: references between farms resolved with populate

import os

from rich.console import Console
from potatodb import create_database

console = Console()

def main() -> None:
    root = os.path.join(os.path.dirname(__file__), "databases")
    db = create_database("Blog", root=root, overwrite=True)
    users = db.create_farm("Users")
    posts = db.create_farm("Posts")

    author = users.insert_one({"username": "Swordax", "email": "swordax@example.com"})
    fan = users.insert_one({"username": "Vazox"})
    posts.insert_many([
        {"owner": author["_id"], "likes": [fan["_id"]], "title": "First", "text": "This is interesting!"},
        {"owner": author["_id"], "likes": [], "title": "Second", "text": "Still interesting"},
    ])

    # one find_one per referenced id
    shaped = posts.find_many(
        populate={"owner": users, "likes": users},
        select={"title": 1, "owner": {"username": 1}, "likes": {"username": 1}},
        recent=True,
    )
    for post in shaped:
        console.print(post)

    db.drop_database()

if __name__ == "__main__":
    main()
