"""Axial hex geometry (pointy-top).

Pure coordinate math: axial <-> pixel conversion, cube rounding,
distance, neighbours and 60-degree rotation. Hexes are ``(q, r)`` tuples;
``"q,r"`` string keys are used wherever a hex indexes JSON-friendly data.
"""

from __future__ import annotations

import math

Hex = tuple[int, int]

SQRT3 = math.sqrt(3)

# Axial directions, counter-clockwise starting east
HEX_DIRECTIONS: list[Hex] = [
    (1, 0), (1, -1), (0, -1), (-1, 0), (-1, 1), (0, 1),
]


def hex_to_key(q: int, r: int) -> str:
    return f"{q},{r}"


def key_to_hex(key: str) -> Hex:
    q, r = key.split(",")
    return int(q), int(r)


def hex_add(a: Hex, b: Hex) -> Hex:
    return a[0] + b[0], a[1] + b[1]


def hex_neighbors(q: int, r: int) -> list[Hex]:
    """Return the 6 axial-coordinate neighbors of hex (q, r)."""
    return [(q + dq, r + dr) for dq, dr in HEX_DIRECTIONS]


def hex_distance(a: Hex, b: Hex) -> int:
    dq = a[0] - b[0]
    dr = a[1] - b[1]
    return max(abs(dq), abs(dr), abs(dq + dr))


def hexes_within(center: Hex, radius: int) -> list[Hex]:
    """All hexes at distance <= radius from center."""
    cq, cr = center
    result: list[Hex] = []
    for dq in range(-radius, radius + 1):
        for dr in range(max(-radius, -dq - radius), min(radius, -dq + radius) + 1):
            result.append((cq + dq, cr + dr))
    return result


def rotate_hex(q: int, r: int, steps: int) -> Hex:
    """Rotate (q, r) about the origin by ``steps`` x 60 degrees.

    One step: (q, r) -> (-r, q + r). Six steps is the identity.
    """
    for _ in range(steps % 6):
        q, r = -r, q + r
    return q, r


def _js_round(x: float) -> int:
    # Half-up rounding; Python's round() is half-to-even
    return math.floor(x + 0.5)


def hex_round(q: float, r: float) -> Hex:
    """Round fractional axial coordinates to the nearest hex.

    Rounds all three cube components, then recomputes the one with the
    largest rounding error from the other two.
    """
    s = -q - r
    rq = _js_round(q)
    rr = _js_round(r)
    rs = _js_round(s)
    q_diff = abs(rq - q)
    r_diff = abs(rr - r)
    s_diff = abs(rs - s)
    if q_diff > r_diff and q_diff > s_diff:
        rq = -rr - rs
    elif r_diff > s_diff:
        rr = -rq - rs
    return rq, rr


def hex_to_pixel(q: int, r: int, size: float) -> tuple[float, float]:
    x = size * SQRT3 * (q + r / 2)
    y = size * 1.5 * r
    return x, y


def pixel_to_hex(x: float, y: float, size: float) -> Hex:
    q = (x * SQRT3 / 3 - y / 3) / size
    r = (y * 2 / 3) / size
    return hex_round(q, r)


def pixel_distance(a: tuple[float, float], b: tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


def same_hex(
    a: tuple[float, float],
    b: tuple[float, float],
    epsilon: float,
) -> bool:
    """Two pixel positions denote the same hex if closer than epsilon."""
    return pixel_distance(a, b) < epsilon
