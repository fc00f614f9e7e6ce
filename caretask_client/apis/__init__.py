from .task_api import TaskApi
from .invitation_api import InvitationApi

__all__ = ["TaskApi", "InvitationApi"]
