"""Project a Distribution onto a pixel grid of node boxes (geometry only, no drawing)."""
import math

from nodeopt.allocation import INFEASIBLE_MESSAGE
from nodeopt.models import Distribution, LayoutDescriptor, NodeBox, SlotBox

PAD = 20  # padding between elements
CORE_SIZE = 20  # px per vCPU cube
CORE_SPACE = 40  # vertical gap between stacked vCPU cubes
NODE_GAP = 20  # gap between node boxes, both axes
EXECUTOR_HEADER_SPACE = 40
EXECUTOR_FOOTER_SPACE = 10
NODE_HEADER_SPACE = 30
NODE_FOOTER_SPACE = 30
EXECUTOR_H_PADDING = 10

INFEASIBLE_HEIGHT = 100

# Nodes beyond this are counted in hidden_nodes instead of drawn
MAX_DRAWN_NODES = 200
HIDDEN_NOTE_SPACE = 30


def executor_height(executor_cores: int) -> int:
    return (
        EXECUTOR_HEADER_SPACE
        + executor_cores * CORE_SIZE
        + max(0, executor_cores - 1) * CORE_SPACE
        + EXECUTOR_FOOTER_SPACE
    )


def node_label(index: int, unused_vcpus: int) -> str:
    label = f"Node {index + 1}"
    if unused_vcpus > 0:
        label += f" — {unused_vcpus} unused vCPUs"
    return label


def project_layout(
    distribution: Distribution,
    executor_cores: int,
    node_vcpus: int,
    surface_width: float,
) -> LayoutDescriptor:
    """
    Lay node boxes out in rows that fit surface_width without scaling.
    Every node shows ceil(node_vcpus / executor_cores) columns so all boxes are identical;
    the last column holds the leftover vCPUs.
    """
    exec_cores = max(1, int(executor_cores))
    node_cores = max(1, int(node_vcpus))
    surface_width = max(1.0, float(surface_width))

    if not distribution.feasible:
        return LayoutDescriptor(
            infeasible=True,
            message=INFEASIBLE_MESSAGE,
            surface_width=surface_width,
            canvas_width=surface_width,
            canvas_height=INFEASIBLE_HEIGHT,
        )

    nodes = len(distribution.per_node) or distribution.nodes_needed
    drawn = min(nodes, MAX_DRAWN_NODES)
    hidden = nodes - drawn
    exec_width = CORE_SIZE + EXECUTOR_H_PADDING * 2
    spacing_x = exec_width + PAD
    cols_per_node = max(1, math.ceil(node_cores / exec_cores))
    node_width = PAD + cols_per_node * (exec_width + PAD)

    area_width = surface_width - PAD * 2
    columns = max(1, math.floor((area_width + NODE_GAP) / (node_width + NODE_GAP)))
    rows = math.ceil(drawn / columns)

    exec_h = executor_height(exec_cores)
    node_height = NODE_HEADER_SPACE + exec_h + NODE_FOOTER_SPACE
    slot_height = node_height - NODE_HEADER_SPACE - NODE_FOOTER_SPACE

    grid_width = columns * node_width + max(0, columns - 1) * NODE_GAP
    required_width = PAD + grid_width + PAD
    canvas_height = PAD + rows * node_height + max(0, rows - 1) * NODE_GAP + PAD
    if hidden:
        canvas_height += HIDDEN_NOTE_SPACE
    canvas_width = max(surface_width, required_width)
    offset_x = PAD + round(((canvas_width - PAD * 2) - grid_width) / 2)

    boxes = []
    for idx in range(drawn):
        placed = distribution.per_node[idx] if idx < len(distribution.per_node) else 0
        col = idx % columns
        row = idx // columns
        x = offset_x + col * (node_width + NODE_GAP)
        y = PAD + row * (node_height + NODE_GAP)
        unused = max(0, node_cores - placed * exec_cores)

        slots = []
        for col_idx in range(cols_per_node):
            used = col_idx < placed
            reserved = distribution.is_reserved_slot(idx, col_idx)
            if col_idx == cols_per_node - 1:
                capacity = max(1, node_cores - exec_cores * (cols_per_node - 1))
            else:
                capacity = exec_cores
            slots.append(SlotBox(
                column=col_idx,
                x=x + PAD + col_idx * spacing_x,
                y=y + NODE_HEADER_SPACE,
                width=exec_width,
                height=slot_height,
                used=used,
                reserved=reserved,
                label=("AM" if reserved else f"Ex {col_idx + 1}") if used else "",
                vcpus=capacity,
                used_vcpus=min(capacity, exec_cores) if used else 0,
            ))

        boxes.append(NodeBox(
            index=idx,
            grid_column=col,
            grid_row=row,
            x=x,
            y=y,
            width=node_width,
            height=node_height,
            placed=placed,
            unused_vcpus=unused,
            label=node_label(idx, unused),
            footer=f"{placed} / {distribution.slots_per_node} executors",
            slots=slots,
        ))

    return LayoutDescriptor(
        surface_width=surface_width,
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        columns=columns,
        rows=rows,
        cols_per_node=cols_per_node,
        node_width=node_width,
        node_height=node_height,
        exec_width=exec_width,
        exec_height=slot_height,
        spacing_x=spacing_x,
        offset_x=offset_x,
        core_size=CORE_SIZE,
        core_space=CORE_SPACE,
        executor_header_space=EXECUTOR_HEADER_SPACE,
        nodes=boxes,
        hidden_nodes=hidden,
    )
