# models/__init__.py
# Инициализация моделей

from .user import User
from .questionnaire import Questionnaire
from .brand import Brand
from .criterion import Criterion
from .response import Response
from .answer import Answer
from .brand_comment import BrandComment
from .activity_log import ActivityLog
