from .user import User
from .rubric import Rubric
from .interaction import Interaction
from .profile import SelectionProfile
from .evaluation import Evaluation
from .scheduler_history import SchedulerHistory
# base and mixins are imported by the above as needed
