import os

import requests

BASE_URL = os.getenv("BLIGHTSTONE_URL", "http://localhost:8000")

DEMO_EMAIL = "admin@blightstone.com"
DEMO_PASSWORD = "password123"


def create_demo_user():
    user_data = {
        "email": DEMO_EMAIL,
        "password": DEMO_PASSWORD,
        "name": "Admin User",
        "role": "Administrator",
    }
    response = requests.post(f"{BASE_URL}/api/auth/register", json=user_data)
    if response.status_code == 400 and "already registered" in response.json().get("error", ""):
        print(f"Demo user already exists: {DEMO_EMAIL}")
        return
    response.raise_for_status()
    print(f"Demo user created: {DEMO_EMAIL}")


def login():
    session = requests.Session()
    response = session.post(
        f"{BASE_URL}/api/auth/login",
        json={"email": DEMO_EMAIL, "password": DEMO_PASSWORD},
    )
    response.raise_for_status()
    return session


def create_demo_project(session):
    project_data = {
        "name": "Launch campaign",
        "description": "Demo project created by the seed script",
        "type": "Marketing",
        "priority": "High",
    }
    response = session.post(f"{BASE_URL}/api/projects/", json=project_data)
    response.raise_for_status()
    return response.json()["project"]["id"]


def create_demo_task(session, project_id):
    task_data = {
        "title": "Draft the launch brief",
        "project_id": project_id,
        "priority": "High",
    }
    response = session.post(f"{BASE_URL}/api/tasks/", json=task_data)
    response.raise_for_status()
    return response.json()["task"]["id"]


if __name__ == "__main__":
    create_demo_user()
    session = login()
    project_id = create_demo_project(session)
    create_demo_task(session, project_id)
    print(f"You can now login with {DEMO_EMAIL} / {DEMO_PASSWORD}")
