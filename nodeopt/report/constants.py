"""Diagram and report colors."""

# Report palette
REPORT_DARK = "#1e293b"       # body text, headings
REPORT_MUTED = "#64748b"      # small text, footer
REPORT_ACCENT = "#3b82f6"     # links, buttons
REPORT_ACCENT_DARK = "#1e3a8a"  # table header
REPORT_GRID = "#e2e8f0"       # table grid, borders
REPORT_WARN = "#ef4444"       # unplaced executors
REPORT_WHITE = "#ffffff"

# Diagram palette
NODE_FILL = "#ffffff"
NODE_TEXT = "#083049"
EXECUTOR_FILL = "#f8fbff"
RESERVED_FILL = "#f0e68c"     # khaki AM slot
EXECUTOR_TEXT = "#0b3255"
VCPU_USED_FILL = "#e6f0ff"
VCPU_USED_STROKE = "#0b6cff"
VCPU_FREE_FILL = "#e2e2e2"
VCPU_FREE_STROKE = "#686868"
INFEASIBLE_TEXT = "#bb2233"
SHADOW = "#d5dbe3"

# Bevel
INSET_SIZE = 4
SHADOW_OFFSET = 3


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    c = hex_color.lstrip("#")[:6]
    value = int(c, 16)
    return (value >> 16) & 255, (value >> 8) & 255, value & 255


def rgb_to_hex(r: int, g: int, b: int) -> str:
    return "#" + "".join(f"{int(v):02x}" for v in (r, g, b))


def lighten(hex_color: str, amount: float) -> str:
    """Shift every channel up by amount * 255."""
    return rgb_to_hex(*(int(clamp(round(c + 255 * amount), 0, 255)) for c in hex_to_rgb(hex_color)))


def darken(hex_color: str, amount: float) -> str:
    """Shift every channel down by amount * 255."""
    return rgb_to_hex(*(int(clamp(round(c - 255 * amount), 0, 255)) for c in hex_to_rgb(hex_color)))
