"""
Diagram Generator - Core Module
===============================

This module contains foundational components:
    - Configuration management (Config)
    - Error types (DiagramGeometryError, HostConnectionError, TransactionError)
    - Scene data structures (PolylineSpec, CircleSpec, DimensionSpec, DiagramSpec)
    - The fixed reference diagram (build_reference_diagram)
    - Geometry validation (validate_diagram, is_simple_closed_loop)
    - Utility functions (to_float)

Nothing in here talks to AutoCAD. The host side lives in generators.py.

Author: CAD Automation Team
Version: 1.0.0
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple, Any
import numpy as np

__version__ = "1.0.0"
__author__ = "CAD Automation Team"


Point2 = Tuple[float, float]
Point3 = Tuple[float, float, float]

ALIGNED = 'aligned'
RADIAL = 'radial'
DIAMETRIC = 'diametric'
DIMENSION_KINDS = (ALIGNED, RADIAL, DIAMETRIC)


# =============================================================================
# ERRORS
# =============================================================================

class DiagramGeometryError(ValueError):
    """The scene data breaks one of its geometric invariants."""


class HostConnectionError(RuntimeError):
    """AutoCAD is not running or has no active document."""


class TransactionError(RuntimeError):
    """A drawing transaction was used after it finished."""


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class Config:
    """
    Master configuration for the diagram command.

    Centralizes every tunable in one place. The diagram itself is not
    configurable; these settings only affect how it reaches the host
    and how the preview looks.

    Attributes:
        COMMAND_NAME: Name the command is known by in reports
        DIM_STYLE_NAME: Dimension style created and made current
        DIM_TEXT_HEIGHT: Text height of the dimension style (DIMTXT)
        CREATE_IF_NOT_EXISTS: Start AutoCAD when no instance is running
        ZOOM_EXTENTS: Zoom to the drawn geometry after commit
        GEOMETRY_TOLERANCE: Distance below which two points are equal
        DIMENSION_FORMAT: Format string for linear dimension text
        RADIUS_FORMAT: Format string for radial dimension text
        DIAMETER_FORMAT: Format string for diametric dimension text
        PREVIEW_FIGSIZE: Preview figure size in inches
        PDF_DPI: Resolution for PDF output
        PNG_DPI: Resolution for PNG output

    Example:
        >>> config = Config()
        >>> config.ZOOM_EXTENTS = False
        >>> config.DIM_TEXT_HEIGHT
        5.0
    """

    # Host command settings
    COMMAND_NAME: str = "DrawExactDiagramWithDimensions"
    DIM_STYLE_NAME: str = "CustomDimStyle"
    DIM_TEXT_HEIGHT: float = 5.0
    CREATE_IF_NOT_EXISTS: bool = False
    ZOOM_EXTENTS: bool = True

    # Geometry checks
    GEOMETRY_TOLERANCE: float = 1e-9

    # Dimension text formatting (preview)
    DIMENSION_FORMAT: str = "{:g}"
    RADIUS_FORMAT: str = "R{:g}"
    DIAMETER_FORMAT: str = "⌀{:g}"

    # Output settings
    PREVIEW_FIGSIZE: Tuple[float, float] = (14.0, 9.0)
    PDF_DPI: int = 300
    PNG_DPI: int = 150


# =============================================================================
# DATA STRUCTURES
# =============================================================================

@dataclass
class PolylineSpec:
    """
    A lightweight polyline in the XY plane.

    Attributes:
        points (List[Point2]): Vertices in drawing order
        closed (bool): Whether the last vertex joins the first
    """
    points: List[Point2] = field(default_factory=list)
    closed: bool = True

    @property
    def vertex_count(self) -> int:
        """Number of vertices."""
        return len(self.points)

    def as_array(self) -> np.ndarray:
        """Vertices as an Nx2 float array."""
        return np.asarray(self.points, dtype=float).reshape(-1, 2)

    def flat_coordinates(self) -> List[float]:
        """Vertices flattened to [x0, y0, x1, y1, ...] for the host."""
        return [float(c) for c in self.as_array().ravel()]


@dataclass
class CircleSpec:
    """
    A circle whose normal is the Z axis.

    Attributes:
        center (Point3): Center point (x, y, z)
        radius (float): Radius in drawing units
    """
    center: Point3
    radius: float

    @property
    def diameter(self) -> float:
        return 2.0 * self.radius


@dataclass
class DimensionSpec:
    """
    One dimension annotation.

    The three points mean different things per kind:

        aligned   : first = start, second = end, third = dimension line point
        radial    : first = center, second = chord point, third = leader length
        diametric : first = chord point, second = far chord point,
                    third = leader length

    Attributes:
        kind (str): 'aligned', 'radial' or 'diametric'
        first (Point3): First defining point
        second (Point3): Second defining point
        third: Dimension line point (aligned) or leader length (others)
        label (str): Short name used in progress output
    """
    kind: str
    first: Point3
    second: Point3
    third: Any
    label: str = ""

    @property
    def measurement(self) -> float:
        """Value the host displays: distance between the defining points."""
        a = np.asarray(self.first, dtype=float)
        b = np.asarray(self.second, dtype=float)
        return float(np.linalg.norm(b - a))

    @property
    def leader_length(self) -> float:
        if self.kind == ALIGNED:
            raise AttributeError("aligned dimensions have no leader length")
        return to_float(self.third)

    @property
    def line_point(self) -> Point3:
        if self.kind != ALIGNED:
            raise AttributeError(f"{self.kind} dimensions have no line point")
        return self.third


@dataclass
class DiagramSpec:
    """
    The complete scene drawn by the command.

    Attributes:
        outline (PolylineSpec): Outer closed outline
        circles (List[CircleSpec]): Circles inside the outline
        dimensions (List[DimensionSpec]): Annotations, in creation order

    Properties:
        entity_count: Number of host entities the scene produces
        bounding_box: (min_x, min_y, max_x, max_y) of outline and circles
    """
    outline: PolylineSpec
    circles: List[CircleSpec] = field(default_factory=list)
    dimensions: List[DimensionSpec] = field(default_factory=list)

    @property
    def entity_count(self) -> int:
        return 1 + len(self.circles) + len(self.dimensions)

    @property
    def bounding_box(self) -> Tuple[float, float, float, float]:
        pts = self.outline.as_array()
        mins = pts.min(axis=0)
        maxs = pts.max(axis=0)
        for circle in self.circles:
            c = np.asarray(circle.center[:2], dtype=float)
            mins = np.minimum(mins, c - circle.radius)
            maxs = np.maximum(maxs, c + circle.radius)
        return (float(mins[0]), float(mins[1]), float(maxs[0]), float(maxs[1]))

    def dimensions_of_kind(self, kind: str) -> List[DimensionSpec]:
        return [d for d in self.dimensions if d.kind == kind]


# =============================================================================
# REFERENCE DIAGRAM
# =============================================================================

OUTLINE_POINTS: List[Point2] = [
    (0, 0),
    (100, 0),
    (100, 50),
    (180, 50),
    (180, 0),
    (330, 0),
    (330, 100),
    (480, 100),
    (480, 250),
    (330, 250),
    (330, 200),
    (100, 200),
    (100, 250),
    (0, 250),
]

# label -> (start, end, dimension line point)
ALIGNED_DIMENSIONS: Dict[str, Tuple[Point3, Point3, Point3]] = {
    # Bottom widths
    'bottom-left': ((0, 0, 0), (100, 0, 0), (50, -20, 0)),
    'bottom-notch': ((100, 0, 0), (180, 0, 0), (140, -20, 0)),
    'bottom-right': ((180, 0, 0), (330, 0, 0), (255, -20, 0)),
    # Top widths
    'top-right': ((330, 250, 0), (480, 250, 0), (405, 270, 0)),
    'top-section': ((100, 200, 0), (215, 200, 0), (157.5, 220, 0)),
    # Heights
    'left-height': ((0, 0, 0), (0, 250, 0), (-20, 125, 0)),
    'right-height': ((480, 100, 0), (480, 250, 0), (500, 125, 0)),
    'notch-height': ((100, 0, 0), (100, 50, 0), (80, 25, 0)),
}


def build_reference_diagram() -> DiagramSpec:
    """
    Build the one fixed scene the command draws.

    Returns:
        DiagramSpec with the outline, two circles and ten dimensions

    Example:
        >>> diagram = build_reference_diagram()
        >>> diagram.entity_count
        13
    """
    outline = PolylineSpec(points=list(OUTLINE_POINTS), closed=True)

    left_circle = CircleSpec(center=(215, 120, 0), radius=40)
    right_circle = CircleSpec(center=(405, 175, 0), radius=30)

    dimensions = [
        DimensionSpec(ALIGNED, start, end, line_point, label)
        for label, (start, end, line_point) in ALIGNED_DIMENSIONS.items()
    ]

    # Left circle
    dimensions.append(DimensionSpec(
        DIAMETRIC, (215, 120, 0), (255, 120, 0), 80, 'left-circle-diameter'
    ))

    # Right circle
    dimensions.append(DimensionSpec(
        RADIAL, (405, 175, 0), (435, 175, 0), 30, 'right-circle-radius'
    ))

    return DiagramSpec(
        outline=outline,
        circles=[left_circle, right_circle],
        dimensions=dimensions,
    )


# =============================================================================
# GEOMETRY VALIDATION
# =============================================================================

def _orientation(p: np.ndarray, q: np.ndarray, r: np.ndarray, tol: float) -> int:
    """Sign of the turn p -> q -> r (1 ccw, -1 cw, 0 collinear)."""
    cross = (q[0] - p[0]) * (r[1] - p[1]) - (q[1] - p[1]) * (r[0] - p[0])
    if abs(cross) <= tol:
        return 0
    return 1 if cross > 0 else -1


def _on_segment(p: np.ndarray, q: np.ndarray, r: np.ndarray, tol: float) -> bool:
    """True if q lies within the bounding box of segment p-r."""
    return (
        min(p[0], r[0]) - tol <= q[0] <= max(p[0], r[0]) + tol and
        min(p[1], r[1]) - tol <= q[1] <= max(p[1], r[1]) + tol
    )


def segments_intersect(
    a1: Sequence[float],
    a2: Sequence[float],
    b1: Sequence[float],
    b2: Sequence[float],
    tol: float = 1e-9
) -> bool:
    """
    Check whether two closed 2D segments share at least one point.

    Args:
        a1, a2: Endpoints of the first segment
        b1, b2: Endpoints of the second segment
        tol: Collinearity tolerance

    Returns:
        True if the segments touch or cross
    """
    p1, p2, q1, q2 = (np.asarray(v, dtype=float)[:2] for v in (a1, a2, b1, b2))

    o1 = _orientation(p1, p2, q1, tol)
    o2 = _orientation(p1, p2, q2, tol)
    o3 = _orientation(q1, q2, p1, tol)
    o4 = _orientation(q1, q2, p2, tol)

    if o1 != o2 and o3 != o4:
        return True

    # Collinear special cases
    if o1 == 0 and _on_segment(p1, q1, p2, tol):
        return True
    if o2 == 0 and _on_segment(p1, q2, p2, tol):
        return True
    if o3 == 0 and _on_segment(q1, p1, q2, tol):
        return True
    if o4 == 0 and _on_segment(q1, p2, q2, tol):
        return True

    return False


def polygon_area(points: Sequence[Point2]) -> float:
    """Signed shoelace area (positive for counter-clockwise order)."""
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    x, y = pts[:, 0], pts[:, 1]
    return 0.5 * float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))


def is_simple_closed_loop(points: Sequence[Point2], tol: float = 1e-9) -> bool:
    """
    Check that vertices form a simple closed loop.

    A simple loop has at least three distinct vertices, non-zero area,
    and no two non-adjacent edges touching each other.

    Args:
        points: Loop vertices; the closing edge is implied
        tol: Distance below which two vertices are considered equal

    Returns:
        True if the loop is simple
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    n = len(pts)
    if n < 3:
        return False

    # Repeated vertices
    deltas = pts[:, None, :] - pts[None, :, :]
    distances = np.linalg.norm(deltas, axis=-1)
    np.fill_diagonal(distances, np.inf)
    if np.any(distances <= tol):
        return False

    if abs(polygon_area(pts)) <= tol:
        return False

    edges = [(pts[i], pts[(i + 1) % n]) for i in range(n)]
    for i in range(n):
        for j in range(i + 1, n):
            # Adjacent edges share a vertex by construction
            if j == i + 1 or (i == 0 and j == n - 1):
                continue
            if segments_intersect(*edges[i], *edges[j], tol=tol):
                return False

    return True


def validate_diagram(diagram: DiagramSpec, config: Config = None) -> None:
    """
    Check the scene before anything is sent to the host.

    Args:
        diagram: Scene to check
        config: Configuration object (tolerance)

    Raises:
        DiagramGeometryError: If the outline is not a simple closed loop,
            a circle radius is not positive, or a dimension is degenerate
    """
    config = config or Config()
    tol = config.GEOMETRY_TOLERANCE

    if not diagram.outline.closed:
        raise DiagramGeometryError("Outline polyline must be closed")
    if not is_simple_closed_loop(diagram.outline.points, tol):
        raise DiagramGeometryError("Outline vertices do not form a simple closed loop")

    for circle in diagram.circles:
        if to_float(circle.radius) <= 0:
            raise DiagramGeometryError(
                f"Circle at {circle.center} has non-positive radius {circle.radius}"
            )

    for dim in diagram.dimensions:
        if dim.kind not in DIMENSION_KINDS:
            raise DiagramGeometryError(f"Unknown dimension kind: {dim.kind}")
        if dim.measurement <= tol:
            raise DiagramGeometryError(f"Dimension '{dim.label}' has zero length")
        if dim.kind != ALIGNED and dim.leader_length < 0:
            raise DiagramGeometryError(
                f"Dimension '{dim.label}' has negative leader length"
            )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def to_float(val: Any) -> float:
    """
    Convert various value types to float.

    Handles COM variants coming back from the host, None, and numeric
    types.

    Args:
        val: Value to convert

    Returns:
        Float value (0.0 if conversion fails)

    Example:
        >>> to_float(None)
        0.0
        >>> to_float("2.5")
        2.5
    """
    if val is None:
        return 0.0

    # COM wrappers expose the raw value
    if hasattr(val, 'value'):
        val = val.value

    try:
        return float(val)
    except (TypeError, ValueError):
        return 0.0


# =============================================================================
# MODULE EXPORTS
# =============================================================================

__all__ = [
    'Config',
    'DiagramGeometryError',
    'HostConnectionError',
    'TransactionError',
    'PolylineSpec',
    'CircleSpec',
    'DimensionSpec',
    'DiagramSpec',
    'ALIGNED',
    'RADIAL',
    'DIAMETRIC',
    'build_reference_diagram',
    'segments_intersect',
    'polygon_area',
    'is_simple_closed_loop',
    'validate_diagram',
    'to_float',
]
