"""Save and load unit cells as JSON or as PNG with embedded metadata.

A PNG save draws a small preview of the cell (grid squares outlined, qubits
as dots) and embeds the unit-cell record in a tEXt chunk (key:
``lattice_editor_unit_cell``), so the preview doubles as a reloadable unit
cell. JSON files are the plain-text alternative. ``FileUnitCellStore``
wraps either as the persistent state the workflow writes to.

Workspace parameters are read from JSON by ``load_params``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from PIL import Image, ImageDraw
from PIL.PngImagePlugin import PngInfo

from ..engine.types import UnitCell, WorkspaceParams

logger = logging.getLogger(__name__)

METADATA_KEY = "lattice_editor_unit_cell"

BACKGROUND = (255, 255, 255)
SQUARE_OUTLINE = (160, 160, 160)
QUBIT_FILL = (30, 30, 30)
PREVIEW_PPU = 4  # pixels per workspace unit
PREVIEW_QUBIT_RADIUS = 3


def render_unit_cell(
    unit_cell: UnitCell, ppu: int = PREVIEW_PPU
) -> Image.Image:
    """Draw the cell with its minimum corner at the image origin."""
    w = max(1, int(unit_cell.width * ppu))
    h = max(1, int(unit_cell.height * ppu))
    img = Image.new("RGB", (w + 1, h + 1), BACKGROUND)
    draw = ImageDraw.Draw(img)

    squares = unit_cell.grid_squares
    min_x = min((s.x for s in squares), default=0)
    min_y = min((s.y for s in squares), default=0)
    for s in squares:
        x0, y0 = (s.x - min_x) * ppu, (s.y - min_y) * ppu
        draw.rectangle(
            [x0, y0, x0 + s.size * ppu, y0 + s.size * ppu],
            outline=SQUARE_OUTLINE,
        )

    r = PREVIEW_QUBIT_RADIUS
    for q in unit_cell.qubits:
        cx, cy = q.x * ppu, q.y * ppu
        draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=QUBIT_FILL)
    return img


def save_unit_cell_png(
    unit_cell: UnitCell, path: str, img: Image.Image | None = None
) -> None:
    """Write ``unit_cell`` into a PNG's tEXt metadata.

    ``img`` is the picture to save; without one, ``render_unit_cell`` draws
    the preview.
    """
    if img is None:
        img = render_unit_cell(unit_cell)
    info = PngInfo()
    info.add_text(METADATA_KEY, json.dumps(unit_cell.to_dict()))
    img.save(path, pnginfo=info)


def save_unit_cell_json(unit_cell: UnitCell, path: str) -> None:
    with open(path, "w") as f:
        json.dump(unit_cell.to_dict(), f, indent=2)
        f.write("\n")


def load_unit_cell_png(path: str) -> UnitCell:
    """Load a unit cell from a PNG file's tEXt metadata.

    Raises ValueError if the PNG does not carry a unit cell.
    """
    img = Image.open(path)
    text_data = getattr(img, "text", None)
    if not text_data or METADATA_KEY not in text_data:
        raise ValueError(
            f"PNG file does not contain a unit cell (missing '{METADATA_KEY}' chunk)"
        )
    return UnitCell.from_dict(json.loads(text_data[METADATA_KEY]))


def load_unit_cell_json(path: str) -> UnitCell:
    with open(path) as f:
        return UnitCell.from_dict(json.load(f))


def load_unit_cell(path: str) -> UnitCell:
    """Load a unit cell, dispatching on the file extension (.png or .json)."""
    lower = path.lower()
    if lower.endswith(".png"):
        return load_unit_cell_png(path)
    elif lower.endswith(".json"):
        return load_unit_cell_json(path)
    else:
        raise ValueError(f"Unsupported file extension: {path}")


def load_params(path: str | None) -> WorkspaceParams:
    """Read workspace parameters; no path means all defaults."""
    if path is None:
        return WorkspaceParams()
    with open(path) as f:
        return WorkspaceParams.from_dict(json.load(f))


class FileUnitCellStore:
    """Persistent unit-cell store backed by a single .json or .png file.

    The last written unit cell is also kept in memory, so reading back in
    the same session does not touch the disk.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        if self.path.suffix.lower() not in (".json", ".png"):
            raise ValueError(f"Unsupported file extension: {self.path}")
        self._cached: UnitCell | None = None

    def set_unit_cell(self, unit_cell: UnitCell) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.suffix.lower() == ".png":
            save_unit_cell_png(unit_cell, str(self.path))
        else:
            save_unit_cell_json(unit_cell, str(self.path))
        self._cached = unit_cell
        logger.info("Saved unit cell to %s", self.path)

    def unit_cell(self) -> UnitCell | None:
        if self._cached is None and self.path.is_file():
            self._cached = load_unit_cell(str(self.path))
            logger.info("Loaded unit cell from %s", self.path)
        return self._cached
