from .admin import Admin
from .application import Application
from .candidate import Candidate
from .job import Job
from .profile import Profile

__all__ = ["Admin", "Application", "Candidate", "Job", "Profile"]
