"""Care schedule engine: periodicity math, history reconciliation and agenda grouping."""
