from taskhub.models.invite import Invite
from taskhub.models.membership import Membership
from taskhub.models.org import Organization
from taskhub.models.task import Task, TaskMessage
from taskhub.models.team import TaskList, Team
from taskhub.models.user import User

__all__ = ["User", "Organization", "Membership", "Invite", "Team", "TaskList", "Task", "TaskMessage"]
