#!/usr/bin/env python3
"""
Diagram Generator - Main Entry Point
====================================

Draws one fixed, fully dimensioned reference diagram into the active
AutoCAD drawing.

This module provides:
    - Command-line interface
    - Main DiagramCommands class (the DrawExactDiagramWithDimensions command)
    - Error handling and exit codes
    - Dependency checking

Usage:
    python main.py [--create] [--preview <output_name>]

Example:
    python main.py
        Draws the diagram into the drawing open in AutoCAD.

    python main.py --preview diagram
        diagram.pdf  - Preview of the diagram
        diagram.png  - Preview image

Author: CAD Automation Team
Version: 1.0.0
"""

import sys
import os

__version__ = "1.0.0"
__author__ = "CAD Automation Team"


# =============================================================================
# BANNER AND STARTUP
# =============================================================================

def print_banner():
    """Print application banner."""
    print("=" * 70)
    print("  DIAGRAM GENERATOR - DrawExactDiagramWithDimensions")
    print(f"  Version {__version__}")
    print("=" * 70)


def check_dependencies(need_host: bool = True) -> bool:
    """
    Check required dependencies.

    NumPy and Matplotlib are always needed. pyautocad is only needed
    when drawing into AutoCAD.

    Args:
        need_host: Whether pyautocad is required

    Returns:
        bool: True if pyautocad is importable

    Raises:
        SystemExit: If a required module is not available
    """
    print("\n[CHECKING DEPENDENCIES]")

    # Check numpy
    try:
        import numpy
        print("  ✓ NumPy")
    except ImportError:
        print("  ✗ NumPy not found")
        sys.exit(1)

    # Check matplotlib
    try:
        import matplotlib
        matplotlib.use('Agg')  # Non-interactive backend
        print("  ✓ Matplotlib")
    except ImportError:
        print("  ✗ Matplotlib not found")
        sys.exit(1)

    # Check pyautocad (COM, Windows only)
    try:
        import pyautocad
        print("  ✓ pyautocad")
        return True
    except ImportError as e:
        if need_host:
            print(f"  ✗ pyautocad not found: {e}")
            print("    Install it on Windows with: pip install pyautocad")
            sys.exit(1)
        print("  ⚠ pyautocad not found - preview only")
        return False


# =============================================================================
# ARGUMENT PARSING
# =============================================================================

def parse_arguments(args: list) -> dict:
    """
    Parse command line arguments.

    The command itself takes no arguments; the options only choose
    where the diagram goes.

    Args:
        args: List of command line arguments (sys.argv)

    Returns:
        dict: preview (output base or None), create (bool)

    Raises:
        SystemExit: On --help, --architecture, or invalid arguments
    """
    script_args = list(args[1:])
    options = {'preview': None, 'create': False}

    if '-h' in script_args or '--help' in script_args:
        print_usage()
        sys.exit(0)

    if '--architecture' in script_args:
        from docs import print_architecture
        print_architecture()
        sys.exit(0)

    i = 0
    while i < len(script_args):
        arg = script_args[i]
        if arg == '--create':
            options['create'] = True
        elif arg == '--preview':
            if i + 1 >= len(script_args) or script_args[i + 1].startswith('-'):
                print("  ✗ --preview needs an output name")
                print_usage()
                sys.exit(1)
            options['preview'] = os.path.abspath(script_args[i + 1])
            i += 1
        else:
            print(f"  ✗ Unknown argument: {arg}")
            print_usage()
            sys.exit(1)
        i += 1

    return options


def print_usage():
    """Print usage information."""
    usage = """
Usage: python main.py [options]

Draws the fixed reference diagram into the drawing open in AutoCAD.

Options:
    --create               : Start AutoCAD if it is not running
    --preview <output>     : Render a PDF/PNG preview instead of drawing
    --architecture         : Show the architecture summary
    -h, --help             : Show this help message

Examples:
    python main.py
    python main.py --create
    python main.py --preview diagram

Output Files (preview only):
    {output}.pdf  - Diagram preview
    {output}.png  - Preview image
"""
    print(usage)


# =============================================================================
# MAIN COMMAND CLASS
# =============================================================================

class DiagramCommands:
    """
    The DrawExactDiagramWithDimensions command.

    Pipeline Steps:
        1. Validate the fixed scene
        2. Connect to the active AutoCAD document
        3. Draw everything inside one transaction and commit

    Attributes:
        config (Config): Configuration object
        document: Host document (set during run, or injected)
        diagram (DiagramSpec): The scene

    Example:
        >>> commands = DiagramCommands()
        >>> results = commands.draw_exact_diagram_with_dimensions()
        >>> results['entities']
        13
    """

    def __init__(self, config=None, document=None):
        """
        Initialize the command.

        Args:
            config: Optional Config object. Uses defaults if None.
            document: Optional host document. Connects to AutoCAD if None.
        """
        from core import Config, build_reference_diagram

        self.config = config or Config()
        self.document = document
        self.diagram = build_reference_diagram()

    def draw_exact_diagram_with_dimensions(self) -> dict:
        """
        Draw the diagram into the active drawing.

        Returns:
            dict: command, entities, dimensions, dim_style, style_created

        Raises:
            DiagramGeometryError: If the scene fails validation
            HostConnectionError: If AutoCAD cannot be reached
        """
        from core import validate_diagram
        from generators import DiagramGenerator

        print("\n" + "=" * 60)
        print(f"  COMMAND: {self.config.COMMAND_NAME}")
        print("=" * 60)

        # Step 1: validate before touching the host
        print("\n[STEP 1: VALIDATE]")
        validate_diagram(self.diagram, self.config)
        print(f"  ✓ Outline: simple closed loop, {self.diagram.outline.vertex_count} vertices")
        print(f"  ✓ Entities to draw: {self.diagram.entity_count}")

        if self.document is None:
            self.document = self._connect()

        generator = DiagramGenerator(self.document, self.diagram, self.config)
        results = generator.generate()

        self._print_summary(results)
        return results

    def render_preview(self, output_base: str) -> dict:
        """
        Render the diagram with matplotlib instead of drawing it.

        Args:
            output_base: Base path for output files (without extension)

        Returns:
            dict: output_files, dimensions
        """
        from generators import PDFRenderer

        print("\n[PREVIEW]")
        renderer = PDFRenderer(self.diagram, self.config)
        pdf_path = renderer.render(output_base)

        return {
            'output_files': [pdf_path, f"{output_base}.png"],
            'dimensions': renderer.dim_count,
        }

    def _connect(self):
        from generators import AutoCADDocument

        print("\n[CONNECT]")
        document = AutoCADDocument.connect(self.config.CREATE_IF_NOT_EXISTS)
        print(f"  ✓ Drawing: {document.name}")
        return document

    def _print_summary(self, results: dict) -> None:
        """
        Print command summary.

        Args:
            results: Results dictionary from the generator
        """
        print("\n" + "=" * 60)
        print("  COMMAND COMPLETE")
        print("=" * 60)

        min_x, min_y, max_x, max_y = self.diagram.bounding_box
        style_state = "created" if results['style_created'] else "reused"

        print(f"""
  Diagram:
    Extents: ({min_x:g}, {min_y:g}) - ({max_x:g}, {max_y:g})
    Entities: {results['entities']}
    Dimensions: {results['dimensions']}
    Dimension Style: {results['dim_style']} ({style_state})
""")


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================

def main():
    """
    Main entry point.

    1. Print banner
    2. Parse arguments
    3. Check dependencies
    4. Run the command (or render the preview)
    5. Handle errors and set the exit code
    """
    from core import Config, DiagramGeometryError, HostConnectionError

    print_banner()

    try:
        options = parse_arguments(sys.argv)
        check_dependencies(need_host=options['preview'] is None)

        config = Config()
        config.CREATE_IF_NOT_EXISTS = options['create']

        commands = DiagramCommands(config)
        if options['preview']:
            commands.render_preview(options['preview'])
        else:
            commands.draw_exact_diagram_with_dimensions()

        sys.exit(0)

    except HostConnectionError as e:
        print(f"\n✗ AutoCAD Error: {e}")
        print("  Open a drawing in AutoCAD, or use --preview")
        sys.exit(1)

    except DiagramGeometryError as e:
        print(f"\n✗ Validation Error: {e}")
        sys.exit(1)

    except KeyboardInterrupt:
        print("\n\n✗ Operation cancelled by user")
        sys.exit(130)

    except Exception as e:
        print(f"\n✗ Unexpected Error: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


# =============================================================================
# MODULE EXECUTION
# =============================================================================

if __name__ == '__main__':
    main()
