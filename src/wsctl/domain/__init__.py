"""Domain layer — workspace model, range reconciliation, and constraint rules.

This layer depends only on stdlib and pydantic.
It must never import from services, infrastructure, commands, or config.
Range semantics are consumed through the :class:`~wsctl.domain.ranges.RangeAlgebra`
protocol; the concrete adapter lives in the infrastructure layer.
"""
