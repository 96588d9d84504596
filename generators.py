"""
Diagram Generator - Generators Module
=====================================

This module contains:
- AutoCAD document adapter (COM access through pyautocad)
- Drawing transaction (all-or-nothing edits over COM)
- Diagram generator (draws the fixed scene into model space)
- PDF renderer and dimension drawer (matplotlib preview)

All output generation for both the AutoCAD host and the matplotlib
preview.

Author: CAD Automation Team
Version: 1.0.0
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

# Matplotlib with non-interactive backend
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.patches import Circle

from core import (
    Config, DiagramSpec, DimensionSpec, HostConnectionError, TransactionError,
    ALIGNED, RADIAL, DIAMETRIC, build_reference_diagram, validate_diagram,
    to_float
)


# AcRegenType.acAllViewports
AC_ALL_VIEWPORTS = 1


# =============================================================================
# AUTOCAD DOCUMENT ADAPTER
# =============================================================================

class AutoCADDocument:
    """
    Wrapper around the active AutoCAD document.

    The only class that issues COM calls. Everything above it works
    with plain tuples and the entity objects it returns, which is what
    lets the tests swap in an in-memory document.

    Attributes:
        acad: pyautocad.Autocad instance
        doc: Active AcadDocument
        model: ModelSpace collection of the active document
    """

    def __init__(self, acad):
        """
        Initialize adapter.

        Args:
            acad: Connected pyautocad.Autocad instance
        """
        self.acad = acad
        self.doc = acad.doc
        self.model = acad.model

        # pyautocad keeps its point helpers next to the connection
        from pyautocad import APoint, aDouble
        self._APoint = APoint
        self._aDouble = aDouble

    @classmethod
    def connect(cls, create_if_not_exists: bool = False) -> 'AutoCADDocument':
        """
        Attach to the running AutoCAD and its active document.

        Args:
            create_if_not_exists: Start AutoCAD if no instance is running

        Returns:
            Connected adapter

        Raises:
            HostConnectionError: If pyautocad is missing, AutoCAD is not
                reachable, or no drawing is open
        """
        try:
            from pyautocad import Autocad
        except ImportError as e:
            raise HostConnectionError(f"pyautocad is not available: {e}") from e

        try:
            acad = Autocad(create_if_not_exists=create_if_not_exists)
            adapter = cls(acad)
        except Exception as e:
            raise HostConnectionError(f"Cannot reach AutoCAD: {e}") from e

        if adapter.doc is None:
            raise HostConnectionError("AutoCAD has no active document")

        return adapter

    @property
    def name(self) -> str:
        return str(self.doc.Name)

    # -- undo grouping ------------------------------------------------------

    def start_undo_mark(self) -> None:
        self.doc.StartUndoMark()

    def end_undo_mark(self) -> None:
        self.doc.EndUndoMark()

    # -- system variables ---------------------------------------------------

    def get_variable(self, name: str) -> Any:
        return self.doc.GetVariable(name)

    def set_variable(self, name: str, value: Any) -> None:
        self.doc.SetVariable(name, value)

    # -- dimension styles ---------------------------------------------------

    def find_dim_style(self, name: str):
        """
        Look up a dimension style by name.

        Args:
            name: Style name (case-insensitive, as in AutoCAD)

        Returns:
            AcadDimStyle, or None if the drawing has no such style
        """
        styles = self.doc.DimStyles
        for i in range(styles.Count):
            style = styles.Item(i)
            if str(style.Name).lower() == name.lower():
                return style
        return None

    def add_dim_style(self, name: str):
        """
        Create a dimension style from the current dimension variables.

        COM styles are not configured property by property; the new
        style copies the document's current DIM* variables.

        Args:
            name: New style name

        Returns:
            AcadDimStyle
        """
        style = self.doc.DimStyles.Add(name)
        try:
            style.CopyFrom(self.doc)
        except Exception:
            style.Delete()
            raise
        return style

    def active_dim_style(self):
        return self.doc.ActiveDimStyle

    def activate_dim_style(self, style) -> None:
        self.doc.ActiveDimStyle = style

    # -- model space entities -----------------------------------------------

    def _point(self, point: Sequence[float]):
        x, y = float(point[0]), float(point[1])
        z = float(point[2]) if len(point) > 2 else 0.0
        return self._APoint(x, y, z)

    def add_polyline(self, points: Sequence[Sequence[float]], closed: bool = True):
        """
        Append a lightweight polyline to model space.

        Args:
            points: 2D vertices
            closed: Closed flag

        Returns:
            AcadLWPolyline
        """
        flat = [float(c) for pt in points for c in pt[:2]]
        polyline = self.model.AddLightWeightPolyline(self._aDouble(*flat))
        try:
            polyline.Closed = closed
        except Exception:
            polyline.Delete()
            raise
        return polyline

    def add_circle(self, center: Sequence[float], radius: float):
        return self.model.AddCircle(self._point(center), float(radius))

    def add_aligned_dimension(self, start, end, line_point):
        return self.model.AddDimAligned(
            self._point(start), self._point(end), self._point(line_point)
        )

    def add_radial_dimension(self, center, chord_point, leader_length: float):
        return self.model.AddDimRadial(
            self._point(center), self._point(chord_point), float(leader_length)
        )

    def add_diametric_dimension(self, chord_point, far_chord_point, leader_length: float):
        return self.model.AddDimDiametric(
            self._point(chord_point), self._point(far_chord_point), float(leader_length)
        )

    # -- display ------------------------------------------------------------

    def regen(self) -> None:
        self.doc.Regen(AC_ALL_VIEWPORTS)

    def zoom_extents(self) -> None:
        self.acad.app.ZoomExtents()


# =============================================================================
# DRAWING TRANSACTION
# =============================================================================

class DrawingTransaction:
    """
    All-or-nothing edit of the active drawing.

    COM has no database transactions, so this class records what it
    changes and undoes it itself unless commit() is reached:

        - appended entities are deleted (newest first)
        - the previous current dimension style is restored
        - dimension styles created here are deleted
        - changed system variables get their old values back

    The whole edit is bracketed by an undo mark, so a committed
    command is also a single UNDO step in AutoCAD.

    Example:
        >>> with DrawingTransaction(document) as tx:
        ...     tx.append(document.add_circle((0, 0, 0), 10))
        ...     tx.commit()
    """

    def __init__(self, document):
        """
        Initialize transaction.

        Args:
            document: AutoCADDocument (or any object with the same methods)
        """
        self.document = document
        self.entities: List[Any] = []
        self.created_styles: List[Any] = []
        self.saved_variables: List[Tuple[str, Any]] = []
        self.previous_style = None
        self.style_changed = False
        self.committed = False
        self.finished = False

    def __enter__(self) -> 'DrawingTransaction':
        self.document.start_undo_mark()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if not self.committed:
                self.rollback()
        finally:
            self.finished = True
            self.document.end_undo_mark()
        # Never suppress the exception that ended the block
        return False

    def _check_open(self) -> None:
        if self.finished or self.committed:
            raise TransactionError("Transaction already finished")

    def append(self, entity):
        """Record an entity appended to model space and return it."""
        self._check_open()
        self.entities.append(entity)
        return entity

    def track_style(self, style):
        """Record a dimension style created inside this transaction."""
        self._check_open()
        self.created_styles.append(style)
        return style

    def set_variable(self, name: str, value: Any) -> None:
        """Change a system variable, remembering its old value."""
        self._check_open()
        previous = self.document.get_variable(name)
        self.document.set_variable(name, value)
        self.saved_variables.append((name, previous))

    def activate_dim_style(self, style) -> None:
        """Make a style current, remembering the previous one."""
        self._check_open()
        previous = self.document.active_dim_style()
        self.document.activate_dim_style(style)
        if not self.style_changed:
            self.previous_style = previous
            self.style_changed = True

    def commit(self) -> None:
        """Make the edits permanent and refresh the display."""
        self._check_open()
        self.document.regen()
        self.committed = True

    def rollback(self) -> None:
        """Undo everything recorded so far."""
        failures = 0

        for entity in reversed(self.entities):
            failures += self._delete(entity)
        self.entities = []

        if self.style_changed and self.previous_style is not None:
            try:
                self.document.activate_dim_style(self.previous_style)
            except Exception as e:
                print(f"  ⚠ Could not restore dimension style: {e}")
                failures += 1

        for style in reversed(self.created_styles):
            failures += self._delete(style)
        self.created_styles = []

        for name, value in reversed(self.saved_variables):
            try:
                self.document.set_variable(name, value)
            except Exception as e:
                print(f"  ⚠ Could not restore {name}: {e}")
                failures += 1
        self.saved_variables = []

        if failures:
            print(f"  ⚠ Rollback incomplete: {failures} item(s) left behind")
        else:
            print("  ✓ Rolled back, drawing unchanged")

    def _delete(self, obj) -> int:
        try:
            obj.Delete()
            return 0
        except Exception as e:
            print(f"  ⚠ Could not delete {obj!r}: {e}")
            return 1


# =============================================================================
# DIAGRAM GENERATOR
# =============================================================================

class DiagramGenerator:
    """
    Draws the fixed diagram into the active drawing.

    Template method that orchestrates, inside one transaction:
    1. Dimension style (create or reuse, make current)
    2. Outline polyline
    3. Circles
    4. Dimensions
    5. Commit

    Attributes:
        document: AutoCADDocument to draw into
        diagram: Scene to draw
        config: Configuration object
        entity_count: Number of entities appended
        dim_count: Number of dimensions appended
        style_created: Whether the dimension style was new
    """

    def __init__(
        self,
        document,
        diagram: Optional[DiagramSpec] = None,
        config: Optional[Config] = None
    ):
        """
        Initialize generator.

        Args:
            document: AutoCADDocument (or compatible object)
            diagram: Scene to draw (reference diagram if None)
            config: Configuration object
        """
        self.document = document
        self.diagram = diagram or build_reference_diagram()
        self.config = config or Config()

        self.entity_count = 0
        self.dim_count = 0
        self.style_created = False

    def generate(self) -> Dict[str, Any]:
        """
        Draw the diagram and commit it.

        Returns:
            dict with command, entities, dimensions, dim_style,
            style_created

        Raises:
            DiagramGeometryError: If the scene is invalid (nothing drawn)
            Exception: Any host error, re-raised after rollback
        """
        self.entity_count = 0
        self.dim_count = 0
        self.style_created = False

        validate_diagram(self.diagram, self.config)

        print("\n[STEP 2: DRAW]")
        with DrawingTransaction(self.document) as tx:
            self._ensure_dim_style(tx)
            self._draw_outline(tx)
            self._draw_circles(tx)
            self._add_dimensions(tx)
            tx.commit()
        print(f"  ✓ Committed {self.entity_count} entities")

        if self.config.ZOOM_EXTENTS:
            self.document.zoom_extents()

        return {
            'command': self.config.COMMAND_NAME,
            'entities': self.entity_count,
            'dimensions': self.dim_count,
            'dim_style': self.config.DIM_STYLE_NAME,
            'style_created': self.style_created,
        }

    def _ensure_dim_style(self, tx: DrawingTransaction) -> None:
        """Create the dimension style once, reuse it afterwards."""
        name = self.config.DIM_STYLE_NAME
        style = self.document.find_dim_style(name)

        if style is None:
            tx.set_variable('DIMTXT', float(self.config.DIM_TEXT_HEIGHT))
            style = tx.track_style(self.document.add_dim_style(name))
            self.style_created = True
            print(f"  ✓ Dimension style: {name} (text height {self.config.DIM_TEXT_HEIGHT:g})")

        tx.activate_dim_style(style)

        if not self.style_created:
            height = to_float(self.document.get_variable('DIMTXT'))
            print(f"  ✓ Dimension style: {name} (existing, text height {height:g})")

    def _draw_outline(self, tx: DrawingTransaction) -> None:
        outline = self.diagram.outline
        tx.append(self.document.add_polyline(outline.points, outline.closed))
        self.entity_count += 1
        print(f"  ✓ Outline: {outline.vertex_count} vertices")

    def _draw_circles(self, tx: DrawingTransaction) -> None:
        for circle in self.diagram.circles:
            tx.append(self.document.add_circle(circle.center, circle.radius))
            self.entity_count += 1
            print(f"  ✓ Circle: center {circle.center[:2]}, R{circle.radius:g}")

    def _add_dimensions(self, tx: DrawingTransaction) -> None:
        for dim in self.diagram.dimensions:
            tx.append(self._create_dimension(dim))
            self.entity_count += 1
            self.dim_count += 1
        print(f"  ✓ Dimensions: {self.dim_count}")

    def _create_dimension(self, dim: DimensionSpec):
        """
        Append one dimension entity.

        Args:
            dim: Dimension to create

        Returns:
            Host dimension entity
        """
        if dim.kind == ALIGNED:
            return self.document.add_aligned_dimension(dim.first, dim.second, dim.line_point)
        if dim.kind == RADIAL:
            return self.document.add_radial_dimension(dim.first, dim.second, dim.leader_length)
        if dim.kind == DIAMETRIC:
            return self.document.add_diametric_dimension(dim.first, dim.second, dim.leader_length)
        raise ValueError(f"Unknown dimension kind: {dim.kind}")


# =============================================================================
# DIMENSION DRAWER (FOR PDF)
# =============================================================================

class DimensionDrawer:
    """
    Draws dimension annotations on matplotlib axes.

    Mirrors the three host dimension types so the preview shows the
    same annotations AutoCAD draws.

    Attributes:
        ax: Matplotlib axes object
        config: Configuration object (text formats)
        color: Dimension line color
        line_width: Line width for dimension lines
        font_size: Font size for dimension text
        gap: Gap between geometry and extension line start
        overshoot: Extension line overshoot past the dimension line
    """

    def __init__(
        self,
        ax,
        config: Optional[Config] = None,
        color: str = '#0066CC',
        line_width: float = 0.6,
        font_size: int = 8,
        gap: float = 2.0,
        overshoot: float = 3.0
    ):
        self.ax = ax
        self.config = config or Config()
        self.color = color
        self.line_width = line_width
        self.font_size = font_size
        self.gap = gap
        self.overshoot = overshoot

    def draw(self, dim: DimensionSpec) -> None:
        """Dispatch on dimension kind."""
        if dim.kind == ALIGNED:
            self.aligned(dim.first, dim.second, dim.line_point, dim.measurement)
        elif dim.kind == RADIAL:
            self.radial(dim.first, dim.second, dim.leader_length, dim.measurement)
        elif dim.kind == DIAMETRIC:
            self.diameter(dim.first, dim.second, dim.leader_length, dim.measurement)
        else:
            raise ValueError(f"Unknown dimension kind: {dim.kind}")

    def _arrow(self, tip: np.ndarray, tail: np.ndarray) -> None:
        arrow_props = dict(arrowstyle='->', color=self.color, lw=self.line_width)
        self.ax.annotate('', xy=tuple(tip), xytext=tuple(tail), arrowprops=arrow_props)

    def _text(self, position: np.ndarray, text: str, rotation: float = 0.0, **kwargs) -> None:
        self.ax.text(
            position[0], position[1],
            text,
            fontsize=self.font_size,
            color=self.color,
            fontweight='bold',
            rotation=rotation,
            bbox=dict(facecolor='white', edgecolor='none', pad=1),
            **kwargs
        )

    def aligned(self, start, end, line_point, value: float) -> None:
        """
        Draw an aligned dimension.

        The dimension line runs parallel to start-end, through the
        projection of line_point onto the normal.

        Args:
            start: First measured point
            end: Second measured point
            line_point: Point the dimension line passes through
            value: Dimension value to display
        """
        p1 = np.asarray(start, dtype=float)[:2]
        p2 = np.asarray(end, dtype=float)[:2]
        lp = np.asarray(line_point, dtype=float)[:2]

        direction = p2 - p1
        u = direction / np.linalg.norm(direction)
        n = np.array([-u[1], u[0]])
        offset = float(np.dot(lp - p1, n))
        side = 1.0 if offset >= 0 else -1.0

        q1 = p1 + n * offset
        q2 = p2 + n * offset

        # Extension lines
        for p, q in ((p1, q1), (p2, q2)):
            ext_start = p + n * side * self.gap
            ext_end = q + n * side * self.overshoot
            self.ax.plot([ext_start[0], ext_end[0]], [ext_start[1], ext_end[1]],
                         color=self.color, lw=self.line_width)

        # Dimension line
        self.ax.plot([q1[0], q2[0]], [q1[1], q2[1]],
                     color=self.color, lw=self.line_width)

        # Arrows
        self._arrow(q1, q1 + u * 3)
        self._arrow(q2, q2 - u * 3)

        # Text reads left to right or bottom to top
        angle = float(np.degrees(np.arctan2(u[1], u[0])))
        if angle > 90:
            angle -= 180
        elif angle <= -90:
            angle += 180

        self._text((q1 + q2) / 2, self.config.DIMENSION_FORMAT.format(value),
                   rotation=angle, ha='center', va='center')

    def radial(self, center, chord_point, leader_length: float, value: float) -> None:
        """
        Draw a radius dimension with leader line.

        Args:
            center: Circle center
            chord_point: Point on the circle
            leader_length: Leader length beyond the chord point
            value: Radius value to display
        """
        c = np.asarray(center, dtype=float)[:2]
        ch = np.asarray(chord_point, dtype=float)[:2]
        u = (ch - c) / np.linalg.norm(ch - c)
        end = ch + u * leader_length

        self.ax.plot([c[0], end[0]], [c[1], end[1]],
                     color=self.color, lw=self.line_width)
        self._arrow(ch, ch - u * 3)

        self._text(end + u * 2, self.config.RADIUS_FORMAT.format(value),
                   ha='left' if u[0] >= 0 else 'right', va='center')

    def diameter(self, chord_point, far_chord_point, leader_length: float, value: float) -> None:
        """
        Draw a diameter dimension with leader line.

        Args:
            chord_point: Point on the circle where the leader starts
            far_chord_point: Opposite point on the circle
            leader_length: Leader length beyond chord_point
            value: Diameter value to display
        """
        p1 = np.asarray(chord_point, dtype=float)[:2]
        p2 = np.asarray(far_chord_point, dtype=float)[:2]
        u = (p1 - p2) / np.linalg.norm(p1 - p2)
        end = p1 + u * leader_length

        # Line across the circle
        self.ax.plot([p2[0], p1[0]], [p2[1], p1[1]],
                     color=self.color, lw=self.line_width)
        self._arrow(p1, p1 - u * 3)
        self._arrow(p2, p2 + u * 3)

        # Leader line
        self.ax.plot([p1[0], end[0]], [p1[1], end[1]],
                     color=self.color, lw=self.line_width)

        self._text(end + u * 2, self.config.DIAMETER_FORMAT.format(value),
                   ha='left' if u[0] >= 0 else 'right', va='center')


# =============================================================================
# PDF RENDERER
# =============================================================================

class PDFRenderer:
    """
    Renders the diagram to PDF and PNG using matplotlib.

    Used when no AutoCAD session is available, and to look at the
    scene without one.

    Attributes:
        diagram: Scene to render
        config: Configuration object
        dim_count: Number of dimensions rendered
    """

    def __init__(
        self,
        diagram: Optional[DiagramSpec] = None,
        config: Optional[Config] = None
    ):
        self.diagram = diagram or build_reference_diagram()
        self.config = config or Config()
        self.dim_count = 0

    def render(self, output_path: str) -> str:
        """
        Render the diagram to PDF and PNG files.

        Args:
            output_path: Base path for output files (without extension)

        Returns:
            Path to PDF file
        """
        validate_diagram(self.diagram, self.config)

        print("\n  Rendering preview...")

        fig, ax = plt.subplots(figsize=self.config.PREVIEW_FIGSIZE)
        fig.suptitle(self.config.COMMAND_NAME, fontsize=14, fontweight='bold')

        self.dim_count = 0
        try:
            self._render_geometry(ax)
            self._render_dimensions(ax)
            self._configure_axes(ax)

            pdf_path = f"{output_path}.pdf"
            fig.savefig(pdf_path, format='pdf', dpi=self.config.PDF_DPI, bbox_inches='tight')
            print(f"  ✓ {pdf_path}")

            png_path = f"{output_path}.png"
            fig.savefig(png_path, format='png', dpi=self.config.PNG_DPI, bbox_inches='tight')
            print(f"  ✓ {png_path}")
        finally:
            plt.close(fig)

        return pdf_path

    def _render_geometry(self, ax) -> None:
        pts = self.diagram.outline.as_array()
        if self.diagram.outline.closed:
            pts = np.vstack([pts, pts[:1]])
        ax.plot(pts[:, 0], pts[:, 1], 'k-', lw=1.0)

        for circle in self.diagram.circles:
            cx, cy = circle.center[0], circle.center[1]
            ax.add_patch(Circle((cx, cy), circle.radius, fill=False, color='k', lw=0.8))
            # Center mark
            mark_size = circle.radius * 0.2
            ax.plot([cx - mark_size, cx + mark_size], [cy, cy], 'k-', lw=0.3)
            ax.plot([cx, cx], [cy - mark_size, cy + mark_size], 'k-', lw=0.3)

    def _render_dimensions(self, ax) -> None:
        drawer = DimensionDrawer(ax, self.config)
        for dim in self.diagram.dimensions:
            drawer.draw(dim)
            self.dim_count += 1

    def _configure_axes(self, ax) -> None:
        min_x, min_y, max_x, max_y = self.diagram.bounding_box
        padding = max(max_x - min_x, max_y - min_y) * 0.2
        ax.set_xlim(min_x - padding, max_x + padding)
        ax.set_ylim(min_y - padding, max_y + padding)
        ax.set_aspect('equal')
        ax.grid(True, alpha=0.2, linestyle='--')
        ax.set_xticks([])
        ax.set_yticks([])


__all__ = [
    'AutoCADDocument',
    'DrawingTransaction',
    'DiagramGenerator',
    'DimensionDrawer',
    'PDFRenderer',
]
