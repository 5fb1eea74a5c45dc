from .Errors import *
from .Config import TableFSConfig
from .Upath import UniversalPath, ResolvePath
from .TableDelta import TableDelta
from .TableFS import TableFS
from .fs.common.Mode import DIRECTORY_MODE, FILE_MODE
from .fs.common.Node import Node, DirectoryEntry
from .block.Storage import BLOCK_SIZE
