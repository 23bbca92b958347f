"""Base schema types for configuration."""

from enum import Enum


class SourceTier(str, Enum):
    """Coarse source classification.

    The tier supplies the default priority score and the default number of
    unread items a source may show in the inbox.
    """

    CORE = "core"
    NORMAL = "normal"
    EXPLORE = "explore"
