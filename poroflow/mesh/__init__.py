from .grid_design import (
    CENTER,
    CORNER,
    FACE_BOUNDARY,
    FACE_INTERNAL,
    FACE_OUTSIDE,
    INACTIVE,
    P,
    PM,
    QUANTITY_NAMES,
    U,
    V,
    XFACE,
    YFACE,
    GridDesign,
    build_grid,
)
from .polygon import point_in_polygon, rectangle_polygon

__all__ = [
    "CENTER",
    "CORNER",
    "FACE_BOUNDARY",
    "FACE_INTERNAL",
    "FACE_OUTSIDE",
    "INACTIVE",
    "P",
    "PM",
    "QUANTITY_NAMES",
    "U",
    "V",
    "XFACE",
    "YFACE",
    "GridDesign",
    "build_grid",
    "point_in_polygon",
    "rectangle_polygon",
]
