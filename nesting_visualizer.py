"""
Nesting Visualizer
Creates SVG sheet layouts of nesting results and PNG thumbnails of single parts
"""

import base64
import io
import math
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from geometry import Entity, entity_to_polyline_points
from nesting_engine import NestingResult, PlacedPart
from part_grouping import Part

PART_COLORS = ['#007bff', '#28a745', '#dc3545', '#ffc107', '#17a2b8', '#6f42c1', '#e83e8c', '#fd7e14']


@dataclass
class VisualizationResult:
    """Result of visualization generation"""
    success: bool
    layout_svg: str = ""
    error_message: str = ""


def placed_contour_points(placed: PlacedPart, contour: Entity) -> List[Tuple[float, float]]:
    """
    Sheet coordinates of a contour of a placed part.

    The contour is rotated about the part's bounding-box center, flipped to
    the sheet's y-down axis and moved to the center of the placed box.
    """
    bbox = placed.part.bounding_box
    cx, cy = bbox.center.x, bbox.center.y
    target_x = placed.x + placed.bounding_box.width / 2
    target_y = placed.y + placed.bounding_box.height / 2

    angle = math.radians(placed.rotation)
    cos_a, sin_a = math.cos(angle), math.sin(angle)

    points = []
    for x, y in entity_to_polyline_points(contour):
        dx, dy = x - cx, y - cy
        rx = dx * cos_a - dy * sin_a
        ry = dx * sin_a + dy * cos_a
        points.append((target_x + rx, target_y - ry))
    return points


def _path_data(points: Sequence[Tuple[float, float]]) -> str:
    if not points:
        return ""
    head, *tail = points
    return f"M {head[0]:.2f} {head[1]:.2f} " + " ".join(f"L {x:.2f} {y:.2f}" for x, y in tail) + " Z"


class NestingVisualizer:
    """Creates visualizations for nesting results"""

    def __init__(self, max_width: float = 800, max_height: float = 600):
        self.max_width = max_width
        self.max_height = max_height
        self.colors = {
            'sheet': '#f8f9fa',
            'sheet_border': '#dee2e6',
            'hole': '#ffffff',
            'label': '#333333',
        }

    def create_visualization(self, result: NestingResult) -> VisualizationResult:
        """Create the layout SVG for one nesting result"""
        if result.sheet_width <= 0 or result.sheet_height <= 0:
            return VisualizationResult(success=False, error_message="Sheet has no area")
        return VisualizationResult(success=True, layout_svg=self.generate_layout_svg(result))

    def generate_layout_svg(self, result: NestingResult) -> str:
        """Generate SVG for the sheet showing every placed part"""
        sheet_width = result.sheet_width
        sheet_height = result.sheet_height

        # Scale factor for display
        scale = min(self.max_width / sheet_width, self.max_height / sheet_height)
        svg_width = sheet_width * scale
        svg_height = sheet_height * scale
        font_size = max(sheet_width, sheet_height) * 0.02

        return f'''<svg width="{svg_width:.1f}" height="{svg_height:.1f}" viewBox="0 0 {sheet_width:.2f} {sheet_height:.2f}" xmlns="http://www.w3.org/2000/svg">
    <!-- Sheet -->
    <rect x="0" y="0" width="{sheet_width:.2f}" height="{sheet_height:.2f}"
          fill="{self.colors['sheet']}" stroke="{self.colors['sheet_border']}" stroke-width="2" />

    <!-- Parts -->
    {self._generate_parts_overlay(result.placed_parts)}

    <!-- Dimensions -->
    <text x="{sheet_width / 2:.2f}" y="{sheet_height - font_size * 0.5:.2f}" text-anchor="middle"
          font-size="{font_size:.1f}" fill="{self.colors['label']}">{sheet_width:.0f} mm</text>
    <text x="{font_size:.2f}" y="{sheet_height / 2:.2f}" text-anchor="middle" font-size="{font_size:.1f}"
          fill="{self.colors['label']}" transform="rotate(-90 {font_size:.2f} {sheet_height / 2:.2f})">{sheet_height:.0f} mm</text>
</svg>'''

    def _generate_parts_overlay(self, placed_parts: Sequence[PlacedPart]) -> str:
        """Generate overlay for nested parts: outer contour filled, holes cut out"""
        part_svgs = []

        for i, placed in enumerate(placed_parts):
            color = PART_COLORS[i % len(PART_COLORS)]
            box = placed.bounding_box
            outer = _path_data(placed_contour_points(placed, placed.part.outer_contour))
            holes = " ".join(_path_data(placed_contour_points(placed, inner))
                             for inner in placed.part.inner_contours)
            label_size = max(min(box.width, box.height) * 0.1, 1.0)

            part_svgs.append(f'''<g id="{placed.part.id}">
        <title>{placed.part.id} ({box.width:.0f}x{box.height:.0f}mm, {placed.rotation:g}°)</title>
        <path d="{outer} {holes}" fill="{color}" fill-rule="evenodd" stroke="#fff" stroke-width="1" opacity="0.7"/>
        <text x="{placed.x + box.width / 2:.2f}" y="{placed.y + box.height / 2:.2f}" text-anchor="middle"
              dominant-baseline="middle" font-size="{label_size:.1f}" fill="#fff" font-weight="bold">{placed.part.id}</text>
    </g>''')

        return '\n    '.join(part_svgs)


def render_part_thumbnail(part: Part, size_px: int = 96) -> str:
    """PNG data URI of a part drawn white on black, outer contour and holes"""
    dpi = 96
    fig, ax = plt.subplots(figsize=(size_px / dpi, size_px / dpi), dpi=dpi)
    try:
        fig.patch.set_facecolor('black')
        ax.set_facecolor('black')
        for contour in (part.outer_contour, *part.inner_contours):
            points = entity_to_polyline_points(contour)
            if points:
                xs, ys = zip(*points)
                ax.plot(xs, ys, color='white', linewidth=1)
        ax.set_aspect('equal')
        ax.axis('off')

        buffer = io.BytesIO()
        fig.savefig(buffer, format='png', dpi=dpi, facecolor='black', edgecolor='none')
    finally:
        plt.close(fig)

    img_str = base64.b64encode(buffer.getvalue()).decode('utf-8')
    return f"data:image/png;base64,{img_str}"
