# flake8: noqa

from .contract_manager import *
from .transport import *
