"""Fixed-capacity list of local intersection roots.

Taichi functions cannot return variable-length sequences, so every
primitive reports its roots in a LocalHits struct. No primitive produces
more than four roots along one ray (a closed cone: two lateral hits and
two caps), which sets the capacity.
"""

import taichi as ti

from src.whitted.core.ray import real, vec4

# Maximum number of roots a single primitive can report
MAX_LOCAL_HITS = 4


@ti.dataclass
class LocalHits:
    """Roots of a ray against one primitive, in object space.

    Attributes:
        count: Number of valid entries in t (0 to MAX_LOCAL_HITS).
        t: Ray parameters of the roots, in the order the primitive found them.
    """

    count: ti.i32
    t: vec4


@ti.func
def empty_hits() -> LocalHits:
    """Return a LocalHits with no roots."""
    return LocalHits(count=0, t=vec4(0.0, 0.0, 0.0, 0.0))


@ti.func
def push_hit(hits: LocalHits, t: real) -> LocalHits:
    """Append a root, silently ignoring it if the list is already full."""
    ts = hits.t
    for k in ti.static(range(MAX_LOCAL_HITS)):
        if hits.count == k:
            ts[k] = t
    count = hits.count
    if count < MAX_LOCAL_HITS:
        count += 1
    return LocalHits(count=count, t=ts)
