from .core import HyperSpace
from .client import HyperSpaceClient
from .editor import Editor, EditorState
from .storage import UploadStore

__version__ = "1.0.0"
