"""Type aliases using PEP 695 syntax.

This module defines aliases for the callback shapes passed between the
aggregation engine, the scan session and observers.
"""

from collections.abc import Callable, Mapping

from storage_freer.types.models import FileSystemEntry

# Payload published with every event bus notification
type EventData = Mapping[str, object]

# Invoked on the coordinating loop each time one entry finishes measuring
type UpdateCallback = Callable[[FileSystemEntry], None]

# Returns True once the batch's scan generation has been superseded
type StaleCheck = Callable[[], bool]
