from dissect.jumplist.exceptions import (
    ConfigurationError,
    DecodeError,
    Error,
    FatalError,
)
from dissect.jumplist.jumplist import (
    AutomaticDestinationFile,
    CustomDestinationFile,
    DestinationType,
    classify,
    decode_automatic_destination,
    decode_custom_destination,
)
from dissect.jumplist.normalize import JumpListShortcutRecord, normalize, normalize_jumplist
from dissect.jumplist.runner import BatchResult, run

__all__ = [
    "AutomaticDestinationFile",
    "BatchResult",
    "ConfigurationError",
    "CustomDestinationFile",
    "DecodeError",
    "DestinationType",
    "Error",
    "FatalError",
    "JumpListShortcutRecord",
    "classify",
    "decode_automatic_destination",
    "decode_custom_destination",
    "normalize",
    "normalize_jumplist",
    "run",
]
