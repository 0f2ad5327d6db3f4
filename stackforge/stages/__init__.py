"""Generator stages and the registry that orders them.

Each stage is a plain (usually async) function taking a ``StageContext`` and
returning whatever output shape is natural for it; the assembler reduces
every shape to ``LogicalFile`` records.
"""

from stackforge.stages.registry import StageContext, StageRegistry, StageSpec, default_registry

__all__ = ["StageContext", "StageRegistry", "StageSpec", "default_registry"]
