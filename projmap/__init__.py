from projmap.codec import DecodeError, JsonOptions
from projmap.common import Box, Ordering
from projmap.map import PMap
from projmap.projected import ProjectedMap

__all__ = [
    "Box",
    "DecodeError",
    "JsonOptions",
    "Ordering",
    "PMap",
    "ProjectedMap",
]
