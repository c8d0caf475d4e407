from liqid_k8s.plan.context import ExecutionContext
from liqid_k8s.plan.plan import Plan, PlanState

__all__ = ['ExecutionContext', 'Plan', 'PlanState']
