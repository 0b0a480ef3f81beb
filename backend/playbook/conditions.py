"""Single-comparison condition evaluation for branching steps.

Supported forms (operators must be surrounded by spaces):

    {{ case.severity }} == critical
    {{ alert.source }} != "edr"
    {{ case.risk_score }} > 80
    {{ case.risk_score }} < 20
    {{ alert.title }} contains phishing

Operators are scanned in fixed priority order; the first one present wins
and the string is split on its first occurrence.
"""

from typing import Any

import structlog

from playbook.variables import resolve

logger = structlog.get_logger(__name__)

OPERATORS = ("==", "!=", ">", "<", "contains")


def _strip_quotes(operand: str) -> str:
    operand = operand.strip()
    if len(operand) >= 2 and operand[0] == operand[-1] and operand[0] in ("'", '"'):
        return operand[1:-1]
    return operand


def _compare(operator: str, left: str, right: str) -> bool:
    if operator == "==":
        return left == right
    if operator == "!=":
        return left != right
    if operator == ">":
        return float(left) > float(right)
    if operator == "<":
        return float(left) < float(right)
    return right in left


def evaluate(condition: Any, context: dict) -> bool:
    """Evaluate a condition string against the playbook context.

    Returns False when no operator is recognised or when evaluation fails
    for any reason (for example a non-numeric operand to '>'). Never raises.
    """
    try:
        if not isinstance(condition, str):
            return False
        expression = resolve(condition, context)
        if not isinstance(expression, str):
            expression = str(expression)

        for operator in OPERATORS:
            token = f" {operator} "
            if token in expression:
                left, right = expression.split(token, 1)
                return _compare(operator, _strip_quotes(left), _strip_quotes(right))

        logger.debug("No operator in condition", condition=condition)
        return False
    except Exception as e:
        logger.warning("Condition evaluation failed", condition=condition, error=str(e))
        return False
