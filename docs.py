"""
================================================================================
DIAGRAM GENERATOR - DOCUMENTATION & ARCHITECTURE
================================================================================

A single AutoCAD command, DrawExactDiagramWithDimensions, that draws one
fixed reference diagram into the active drawing over COM.

================================================================================
OVERVIEW
================================================================================

The command draws, at fixed coordinates:

    - A closed 14-vertex outline polyline
    - Two circles (R40 at (215, 120), R30 at (405, 175))
    - Eight aligned dimensions along the outline
    - A diameter dimension on the left circle and a radius dimension on
      the right circle

It first makes sure the dimension style "CustomDimStyle" (text height 5)
exists and is current. Every edit happens in one transaction: either the
whole diagram is committed, or the drawing is left as it was.

================================================================================
REQUIREMENTS
================================================================================

- Python 3.8+
- Windows with AutoCAD (for drawing into the host)
- pyautocad >= 0.2.0
- NumPy >= 1.20.0
- Matplotlib >= 3.4.0

================================================================================
INSTALLATION
================================================================================

    pip install -e .            # numpy, matplotlib, pyautocad (Windows)
    pip install -e .[test]      # plus pytest

================================================================================
USAGE
================================================================================

    # Draw into the drawing open in AutoCAD
    python main.py

    # Start AutoCAD first if needed
    python main.py --create

    # No AutoCAD at hand: render diagram.pdf and diagram.png
    python main.py --preview diagram

================================================================================
ERRORS
================================================================================

    HostConnectionError   : AutoCAD not running or no drawing open (exit 1)
    DiagramGeometryError  : The outline is not a simple closed loop (exit 1)
    TransactionError      : A finished transaction was used again
    Other host errors     : Drawing rolled back, error re-raised (exit 1)
    Ctrl-C                : exit 130

================================================================================
TESTING
================================================================================

    pytest

The tests replace the AutoCAD document with an in-memory fake, so they
run on any platform.

================================================================================
"""

__version__ = "1.0.0"
__author__ = "CAD Automation Team"
__doc_version__ = "2024.1"


def print_help():
    """Print usage help to console."""
    help_text = """
    Diagram Generator - DrawExactDiagramWithDimensions
    ==================================================

    Usage:
        python main.py [--create] [--preview <output_name>]

    Options:
        --create     : Start AutoCAD if it is not running
        --preview    : Render <output_name>.pdf and .png instead of drawing

    For more information, see the module docstring:
        python -c "import docs; print(docs.__doc__)"
    """
    print(help_text)


def print_architecture():
    """Print architecture summary to console."""
    arch_text = """
    Diagram Generator - Architecture Summary
    ========================================

    Command Pipeline:

        1. VALIDATE  : Outline is a simple closed loop, radii positive
        2. CONNECT   : Attach to the active AutoCAD document (pyautocad)
        3. STYLE     : Create or reuse CustomDimStyle, make it current
        4. DRAW      : Outline, circles, dimensions into model space
        5. COMMIT    : End undo mark, regen, zoom extents

    Transaction:

        Every entity, style and system variable touched is recorded.
        Without commit() they are deleted or restored in reverse order.

    Key Components:

        - DiagramCommands     : The command (main.py)
        - build_reference_diagram, validate_diagram : Scene data (core.py)
        - AutoCADDocument     : COM adapter (generators.py)
        - DrawingTransaction  : All-or-nothing edits (generators.py)
        - DiagramGenerator    : Draws the scene (generators.py)
        - PDFRenderer         : Matplotlib preview (generators.py)
    """
    print(arch_text)


if __name__ == '__main__':
    print_help()
