"""
Pure scheduling rules for phasekit.

Modules in this package are synchronous and side-effect free:
- dates: calendar arithmetic
- recurrence: recurring occurrence generation and validation
- budget: allocation totals, the budget gate and statistics
- distribution: per-day hour distribution across phase segments
- hierarchy: split phase ordering, repair and exclusivity
- detection: recurring pattern detection
"""
