# src/taskflow/tasks/seed.py

"""Sample board shown on first run (storage empty or unreadable)."""

from __future__ import annotations

from datetime import date, timedelta

from .task_models import Priority, Status, Subtask, Task


def sample_tasks(today: date | None = None) -> list[Task]:
    """
    Five illustrative tasks covering every status and priority, with and
    without subtasks and due dates. Due dates are relative to `today`.
    """
    today = today or date.today()
    return [
        Task(
            id="task-1",
            title="Design the new landing page",
            description=(
                "Create a modern and responsive design for the new landing page, "
                "focusing on user engagement and conversion."
            ),
            priority=Priority.HIGH,
            status=Status.TODO,
            due_date=today + timedelta(days=3),
            subtasks=(
                Subtask(id="subtask-1-1", text="Collect reference designs"),
                Subtask(id="subtask-1-2", text="Draft wireframes"),
            ),
        ),
        Task(
            id="task-2",
            title="Develop user authentication",
            description=(
                "Implement secure user authentication using JWT and password hashing. "
                "Include sign-up, login, and logout functionality."
            ),
            priority=Priority.HIGH,
            status=Status.IN_PROGRESS,
            due_date=today + timedelta(days=1),
            subtasks=(
                Subtask(id="subtask-2-1", text="Password hashing", completed=True),
                Subtask(id="subtask-2-2", text="Login endpoint", completed=True),
                Subtask(id="subtask-2-3", text="Logout and token revocation"),
            ),
        ),
        Task(
            id="task-3",
            title="Set up CI/CD pipeline",
            description=(
                "Configure a continuous integration and continuous deployment "
                "pipeline to automate testing and deployment."
            ),
            priority=Priority.MEDIUM,
            status=Status.IN_PROGRESS,
        ),
        Task(
            id="task-4",
            title="Write documentation for the API",
            description=(
                "Create comprehensive documentation for all API endpoints, "
                "including request/response examples."
            ),
            priority=Priority.MEDIUM,
            status=Status.DONE,
            due_date=today - timedelta(days=2),
            subtasks=(Subtask(id="subtask-4-1", text="Endpoint reference", completed=True),),
        ),
        Task(
            id="task-5",
            title="Update footer with new links",
            description="Add the new social media links and privacy policy link to the website footer.",
            priority=Priority.LOW,
            status=Status.TODO,
        ),
    ]
