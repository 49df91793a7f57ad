"""
qtprompt - declarative modal dialogs for PyQt5.
"""

from .dialog import *  # noqa: F401,F403
from .dialog import __all__

__version__ = "1.0.0"
