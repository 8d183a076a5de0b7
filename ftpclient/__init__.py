from ftpclient.core import *  # noqa: F401,F403
from ftpclient.core import __all__

__version__ = "0.1.0"
