# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Structural comparison of syntax trees for safe mode."""

from tree_sitter import Tree


def compare_trees(left_tree: Tree, right_tree: Tree) -> bool:
    """Return True if both trees have the same structure.

    Only named nodes count as structure: punctuation such as a dangling `;`
    or a trailing `,` may be removed by the formatter. Source positions and
    literal text are ignored.
    """
    left_stack = [left_tree.root_node]
    right_stack = [right_tree.root_node]

    while left_stack and right_stack:
        left_node = left_stack.pop()
        right_node = right_stack.pop()

        if left_node.named_child_count != right_node.named_child_count:
            # NOTE: an annotation wrapped onto the line of the variable it
            # annotates becomes a child of that variable. That change is
            # harmless but is still reported.
            return False

        for left_child, right_child in zip(left_node.named_children, right_node.named_children):
            if left_child.grammar_id != right_child.grammar_id:
                return False
            left_stack.append(left_child)
            right_stack.append(right_child)

    return True
