"""
Shared fixtures: an in-memory stand-in for the AutoCAD document.

FakeDocument implements the same methods as generators.AutoCADDocument
and records every call, so tests can assert on what would have been
sent to the host.

ComAcad and friends go one level lower: they mimic the COM objects that
pyautocad hands to AutoCADDocument, so the adapter itself runs against
them with a stub pyautocad module.
"""

import sys
import types

import pytest


class FakeEntity:
    """Model space entity (or dimension style) with a Delete() method."""

    def __init__(self, owner, kind, *args, fail_delete=False):
        self.owner = owner
        self.kind = kind
        self.args = args
        self.deleted = False
        self.fail_delete = fail_delete
        self.Closed = False
        self.Name = args[0] if kind == 'dimstyle' else kind

    def Delete(self):
        if self.fail_delete:
            raise RuntimeError(f"cannot delete {self.kind}")
        self.deleted = True
        self.owner.remove(self)

    def __repr__(self):
        return f"FakeEntity({self.kind})"


class FakeDocument:
    """Records host calls; optionally fails on a named method."""

    def __init__(self, fail_on=None, fail_delete_kinds=()):
        self.fail_on = fail_on
        self.fail_delete_kinds = set(fail_delete_kinds)
        self.name = "Drawing1.dwg"

        self.model = []
        self.calls = []
        self.variables = {'DIMTXT': 2.5}
        standard = FakeEntity(None, 'dimstyle', 'Standard')
        self.styles = [standard]
        self.active_style = standard
        self.style_text_heights = {'Standard': 2.5}

        self.undo_depth = 0
        self.regen_count = 0
        self.zoom_count = 0

    # -- bookkeeping ----------------------------------------------------

    def _record(self, method, *args):
        self.calls.append(method)
        if method == self.fail_on:
            raise RuntimeError(f"host refused {method}")

    def _add(self, kind, *args):
        entity = FakeEntity(self.model, kind, *args,
                            fail_delete=kind in self.fail_delete_kinds)
        self.model.append(entity)
        return entity

    def remove(self, obj):
        if obj in self.model:
            self.model.remove(obj)
        elif obj in self.styles:
            self.styles.remove(obj)

    def kinds(self):
        return [e.kind for e in self.model]

    # -- adapter interface ------------------------------------------------

    def start_undo_mark(self):
        self._record('start_undo_mark')
        self.undo_depth += 1

    def end_undo_mark(self):
        self._record('end_undo_mark')
        self.undo_depth -= 1

    def get_variable(self, name):
        return self.variables[name]

    def set_variable(self, name, value):
        self._record('set_variable', name, value)
        self.variables[name] = value

    def find_dim_style(self, name):
        for style in self.styles:
            if style.Name.lower() == name.lower():
                return style
        return None

    def add_dim_style(self, name):
        self._record('add_dim_style', name)
        style = FakeEntity(self, 'dimstyle', name)
        self.styles.append(style)
        self.style_text_heights[name] = self.variables['DIMTXT']
        return style

    def active_dim_style(self):
        return self.active_style

    def activate_dim_style(self, style):
        self._record('activate_dim_style', style)
        self.active_style = style
        self.variables['DIMTXT'] = self.style_text_heights[style.Name]

    def add_polyline(self, points, closed=True):
        self._record('add_polyline')
        entity = self._add('polyline', list(points))
        entity.Closed = closed
        return entity

    def add_circle(self, center, radius):
        self._record('add_circle')
        return self._add('circle', center, radius)

    def add_aligned_dimension(self, start, end, line_point):
        self._record('add_aligned_dimension')
        return self._add('aligned', start, end, line_point)

    def add_radial_dimension(self, center, chord_point, leader_length):
        self._record('add_radial_dimension')
        return self._add('radial', center, chord_point, leader_length)

    def add_diametric_dimension(self, chord_point, far_chord_point, leader_length):
        self._record('add_diametric_dimension')
        return self._add('diametric', chord_point, far_chord_point, leader_length)

    def regen(self):
        self._record('regen')
        self.regen_count += 1

    def zoom_extents(self):
        self._record('zoom_extents')
        self.zoom_count += 1


@pytest.fixture
def fake_document():
    return FakeDocument()


@pytest.fixture
def make_document():
    def factory(**kwargs):
        return FakeDocument(**kwargs)
    return factory


# =============================================================================
# COM OBJECTS (FOR AutoCADDocument)
# =============================================================================

class ComEntity:
    """Entity as returned by ModelSpace.Add*()."""

    def __init__(self, owner, kind, args, refuse_closed=False):
        self.owner = owner
        self.kind = kind
        self.args = args
        self.refuse_closed = refuse_closed
        self._closed = False

    @property
    def Closed(self):
        return self._closed

    @Closed.setter
    def Closed(self, value):
        if self.refuse_closed:
            raise RuntimeError("Closed is read-only")
        self._closed = value

    def Delete(self):
        self.owner.remove(self)


class ComModelSpace(list):
    """ModelSpace collection recording the arguments of every Add*() call."""

    def __init__(self):
        super().__init__()
        self.refuse_closed = False

    def _add(self, kind, *args):
        entity = ComEntity(self, kind, args, refuse_closed=self.refuse_closed)
        self.append(entity)
        return entity

    def AddLightWeightPolyline(self, vertices):
        return self._add('lwpolyline', vertices)

    def AddCircle(self, center, radius):
        return self._add('circle', center, radius)

    def AddDimAligned(self, start, end, line_point):
        return self._add('aligned', start, end, line_point)

    def AddDimRadial(self, center, chord_point, leader_length):
        return self._add('radial', center, chord_point, leader_length)

    def AddDimDiametric(self, chord_point, far_chord_point, leader_length):
        return self._add('diametric', chord_point, far_chord_point, leader_length)


class ComDimStyle:

    def __init__(self, owner, name):
        self.owner = owner
        self.Name = name
        self.copied_from = None

    def CopyFrom(self, source):
        if self.owner.refuse_copy:
            raise RuntimeError("CopyFrom failed")
        self.copied_from = source

    def Delete(self):
        self.owner.items.remove(self)


class ComDimStyles:
    """DimStyles collection, indexed through Count/Item() like COM."""

    def __init__(self, names):
        self.items = [ComDimStyle(self, name) for name in names]
        self.refuse_copy = False

    @property
    def Count(self):
        return len(self.items)

    def Item(self, index):
        return self.items[index]

    def Add(self, name):
        style = ComDimStyle(self, name)
        self.items.append(style)
        return style

    def names(self):
        return [style.Name for style in self.items]


class ComDocument:

    def __init__(self):
        self.Name = 'Drawing1.dwg'
        self.DimStyles = ComDimStyles(['Standard', 'Annotative'])
        self.ActiveDimStyle = self.DimStyles.Item(0)
        self.variables = {'DIMTXT': 2.5}
        self.calls = []

    def StartUndoMark(self):
        self.calls.append('StartUndoMark')

    def EndUndoMark(self):
        self.calls.append('EndUndoMark')

    def GetVariable(self, name):
        return self.variables[name]

    def SetVariable(self, name, value):
        self.variables[name] = value

    def Regen(self, which):
        self.calls.append(('Regen', which))


class ComApplication:

    def __init__(self):
        self.zoom_count = 0

    def ZoomExtents(self):
        self.zoom_count += 1


class ComAcad:
    """Stand-in for a connected pyautocad.Autocad."""

    def __init__(self):
        self.doc = ComDocument()
        self.model = ComModelSpace()
        self.app = ComApplication()


@pytest.fixture
def com_acad():
    return ComAcad()


@pytest.fixture
def pyautocad_stub(monkeypatch):
    """
    Install a stub pyautocad module.

    APoint becomes a plain (x, y, z) tuple and aDouble a tagged tuple,
    so tests can read back exactly what the adapter passed to COM.
    """
    module = types.ModuleType('pyautocad')
    module.APoint = lambda x=0.0, y=0.0, z=0.0: (x, y, z)
    module.aDouble = lambda *values: ('aDouble',) + values
    monkeypatch.setitem(sys.modules, 'pyautocad', module)
    return module
