"""Provision a user for local development and print a session token.

Usage: python add_user.py <github-login> [github-id]
"""
import sys

from todolist.database import SessionLocal, create_tables
from todolist.models import User
from todolist.routers.auth import create_access_token

login = sys.argv[1] if len(sys.argv) > 1 else "octocat"
github_id = sys.argv[2] if len(sys.argv) > 2 else f"dev-{login}"

# Create tables if not exist
create_tables()

db = SessionLocal()

user = db.query(User).filter(User.github_id == github_id).first()
if user:
    print(f"User {user.username} already exists")
else:
    user = User(github_id=github_id, username=login)
    db.add(user)
    db.commit()
    db.refresh(user)
    print(f"Created user {user.username}")

print("Session token (send as 'Authorization: Bearer <token>' or the 'token' cookie):")
print(create_access_token(data={"sub": user.id}))

db.close()
