"""Remote video service client."""

from dubflow.client.remote import (
    RemoteServiceClient,
    demo_project_id,
    demo_user_id,
    member_since_label,
)

__all__ = [
    "RemoteServiceClient",
    "demo_user_id",
    "demo_project_id",
    "member_since_label",
]
