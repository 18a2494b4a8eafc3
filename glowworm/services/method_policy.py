"""Which execution method handles a (media kind, complexity) pair."""
from glowworm.schemas.analysis import Complexity, MediaDescriptor, MediaKind, ProcessingMethod

MethodTable = dict[tuple[MediaKind, Complexity], ProcessingMethod]


def _uniform(kind: MediaKind, method: ProcessingMethod) -> MethodTable:
    return {(kind, tier): method for tier in Complexity}


# Images, audio and documents stay local at every tier; video always goes to a sandbox.
DEFAULT_METHOD_TABLE: MethodTable = {
    **_uniform(MediaKind.IMAGE, ProcessingMethod.LOCAL),
    **_uniform(MediaKind.VIDEO, ProcessingMethod.SANDBOX),
    **_uniform(MediaKind.AUDIO, ProcessingMethod.LOCAL),
    **_uniform(MediaKind.DOCUMENT, ProcessingMethod.LOCAL),
}


def select_method(
    descriptor: MediaDescriptor,
    complexity: Complexity,
    table: MethodTable | None = None,
) -> ProcessingMethod:
    table = DEFAULT_METHOD_TABLE if table is None else table
    return table.get((descriptor.media_kind, complexity), ProcessingMethod.LOCAL)
