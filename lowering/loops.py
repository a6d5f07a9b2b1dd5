"""
Loop Lowering for Lev.

A `while cond { body }` expression becomes:

    preheader:  cond0 = <cond against the incoming environment>
                br (cond0 == 0), afterloop, loop
    loop:       phi nodes, one per variable read by the condition
                <body against the merged environment>
                cond1 = <cond against the environment after the body>
                br (cond1 == 0), afterloop, loop      ; the latch
    afterloop:  ...

The phi nodes are built in two phases. The preheader edge is known when the
header is opened; the latch edge is only known after the body has been
lowered, so each phi starts with a pending edge that is patched once the
latch exists. Every phi ends up with exactly two incoming edges.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional
from llvmlite import ir

from ast_nodes import While
from lowering.analysis import rhs_vars
from lowering.env import Environment, Levity
from lowering.names import encode_identifier

if TYPE_CHECKING:
    from lowering.core import Lowerer

logger = logging.getLogger(__name__)


@dataclass
class MergePoint:
    """A loop header phi whose latch edge may still be pending"""
    name: str
    phi: ir.PhiInstr
    levity: Levity
    preheader: ir.Block
    latch: Optional[ir.Block] = None

    @property
    def pending(self) -> bool:
        return self.latch is None

    def patch(self, value: ir.Value, latch: ir.Block):
        """Fill in the latch edge. A merge point is patched exactly once."""
        if not self.pending:
            raise RuntimeError(
                f"Merge point for '{self.name}' already has its latch edge "
                f"from block '{self.latch.name}'"
            )
        self.phi.add_incoming(value, latch)
        self.latch = latch


class LoopLowerer:
    """Generates loop-related LLVM IR for the Lev lowering engine."""

    def __init__(self, cg: 'Lowerer'):
        self.cg = cg

    @property
    def builder(self) -> ir.IRBuilder:
        return self.cg.builder

    # ========================================================================
    # While Loops
    # ========================================================================

    def lower_while(self, expr: While, env: Environment) -> ir.Value:
        """Lower a while loop. The loop expression itself evaluates to 0."""
        cg = self.cg
        func = self.builder.function
        zero = cg.constant(0)

        # The condition runs once before the loop; it may itself contain loops
        cond = cg.lower_expression(expr.cond, env)
        is_zero = self.builder.icmp_signed("==", cond, zero, name="iszero")

        loop_block = func.append_basic_block("loop")
        after_loop = func.append_basic_block("afterloop")
        preheader = self.builder.block
        self.builder.cbranch(is_zero, after_loop, loop_block)

        self.builder.position_at_end(loop_block)
        merge_points = self.open_merge_points(expr, env, preheader)
        merged_env = env
        for point in merge_points:
            merged_env = merged_env.bind(point.name, point.phi, point.levity)

        _, body_env = cg.lower_block(expr.block, merged_env.fork())

        cond = cg.lower_expression(expr.cond, body_env)
        is_zero = self.builder.icmp_signed("==", cond, zero, name="iszero")
        latch = self.builder.block
        self.close_merge_points(merge_points, body_env, latch)
        self.builder.cbranch(is_zero, after_loop, loop_block)

        self.builder.position_at_end(after_loop)
        cg.merge_points.extend(merge_points)
        return zero

    def open_merge_points(self, expr: While, env: Environment,
                          preheader: ir.Block) -> List[MergePoint]:
        """Create a header phi for every bound variable the condition reads.

        Must run with the builder at the start of the (still empty) header
        block, since phi nodes lead their block.
        """
        merge_points = []
        for name in sorted(rhs_vars(expr.cond)):
            binding = env.lookup(name)
            if binding is None:
                continue
            phi = self.builder.phi(binding.value.type, name=encode_identifier(name))
            phi.add_incoming(binding.value, preheader)
            merge_points.append(MergePoint(name, phi, binding.levity, preheader))
        if merge_points:
            logger.debug("Opened %d merge point(s) in %s: %s", len(merge_points),
                         self.builder.block.name, ", ".join(p.name for p in merge_points))
        return merge_points

    def close_merge_points(self, merge_points: List[MergePoint], body_env: Environment,
                           latch: ir.Block):
        """Patch each pending edge with the value the body leaves behind"""
        for point in merge_points:
            point.patch(self.latch_value(point, body_env), latch)
            logger.debug("Patched merge point %s from %s", point.name, latch.name)

    def latch_value(self, point: MergePoint, body_env: Environment) -> ir.Value:
        """The value carried around the back edge for one merge point.

        A body that rebinds the name with another representation cannot feed
        the phi; the header value is carried unchanged in that case.
        """
        binding = body_env.lookup(point.name)
        if (binding is not None
                and type(binding.levity) is type(point.levity)
                and binding.value.type == point.phi.type):
            return binding.value
        return point.phi
