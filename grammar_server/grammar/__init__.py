from .diagnostics import *
from .grammar import *
from .nodes import *
from .parser import *
