"""
Dependency Resolver: the products another product needs.

Each ProductDependency is an edge product -> required product with a quantity
formula evaluated against the triggering item's quantity. The resolver only
returns candidates; the caller decides what to do with them (auto-add when
is_automatic, otherwise surface as a suggestion).

Resolution is one level deep. A required product's own dependencies are
only resolved if the caller asks again for that product, so a circular
catalog cannot expand forever.
"""

import ast
import logging
import math
import operator
from decimal import Decimal
from typing import List

from ..errors import ConfigurationError, NotFoundError
from ..schemas import Product, ResolvedDependency

logger = logging.getLogger(__name__)

_QUANTITY_NAMES = ("quantity", "qty")

_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS = {
    "ceil": math.ceil,
    "floor": math.floor,
    "round": round,
    "min": min,
    "max": max,
    "abs": abs,
}


def evaluate_quantity_formula(formula: str, quantity: int) -> int:
    """
    Evaluate a dependency quantity formula for a triggering quantity.

    Arithmetic only: numbers, `quantity` (or `qty`), + - * / // % **,
    parentheses and ceil/floor/round/min/max/abs. Anything else raises
    ConfigurationError. Fractional results round up since parts are
    ordered whole; negative results are rejected.

        evaluate_quantity_formula("1", 5)             -> 1
        evaluate_quantity_formula("quantity * 2", 3)  -> 6
        evaluate_quantity_formula("ceil(qty / 4)", 5) -> 2
    """
    text = str(formula or "").strip()
    if not text:
        raise ConfigurationError("Empty quantity formula")

    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as e:
        raise ConfigurationError(f"Malformed quantity formula '{text}': {e.msg}") from e

    value = _evaluate(tree.body, Decimal(quantity), text)
    result = math.ceil(value)
    if result < 0:
        raise ConfigurationError(
            f"Quantity formula '{text}' gave a negative quantity ({value}) for quantity={quantity}"
        )
    return int(result)


def _evaluate(node, quantity: Decimal, formula: str) -> Decimal:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
            return Decimal(str(node.value))
        raise ConfigurationError(f"Unsupported literal {node.value!r} in quantity formula '{formula}'")

    if isinstance(node, ast.Name):
        if node.id in _QUANTITY_NAMES:
            return quantity
        raise ConfigurationError(f"Unknown name '{node.id}' in quantity formula '{formula}'")

    if isinstance(node, ast.BinOp) and type(node.op) in _BIN_OPS:
        left = _evaluate(node.left, quantity, formula)
        right = _evaluate(node.right, quantity, formula)
        try:
            return _BIN_OPS[type(node.op)](left, right)
        except ArithmeticError as e:
            raise ConfigurationError(f"Quantity formula '{formula}' failed: {e!r}") from e

    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand, quantity, formula))

    if (isinstance(node, ast.Call) and isinstance(node.func, ast.Name)
            and node.func.id in _FUNCTIONS and not node.keywords):
        args = [_evaluate(a, quantity, formula) for a in node.args]
        try:
            return Decimal(_FUNCTIONS[node.func.id](*args))
        except (TypeError, ValueError, ArithmeticError) as e:
            raise ConfigurationError(f"Quantity formula '{formula}' failed: {e}") from e

    raise ConfigurationError(
        f"Unsupported expression ({type(node).__name__}) in quantity formula '{formula}'"
    )


class DependencyResolver:
    """Resolves a product's ProductDependency edges against one catalog."""

    def __init__(self, catalog):
        self.catalog = catalog

    def resolve(self, product: Product, triggering_quantity: int) -> List[ResolvedDependency]:
        """
        Required products for `triggering_quantity` units of `product`, in
        catalog order, automatic and suggested alike.
        """
        resolved = []
        for dep in self.catalog.dependencies_for(product.id):
            try:
                required = self.catalog.product(dep.required_product_id)
            except NotFoundError as e:
                raise ConfigurationError(
                    f"Dependency {dep.id} requires unknown product {dep.required_product_id}"
                ) from e

            qty = evaluate_quantity_formula(dep.quantity_formula, triggering_quantity)
            logger.debug("Dependency %s: %s x%d (automatic=%s)",
                         dep.id, required.id, qty, dep.is_automatic)
            resolved.append(ResolvedDependency(
                dependency_id=dep.id,
                product_id=required.id,
                product_name=required.name,
                quantity=qty,
                is_automatic=dep.is_automatic,
                description=dep.description,
            ))
        return resolved
