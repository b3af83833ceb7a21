from .expression import Expression
from .operation import Associativity, Fix, OperationKind


def _binds_tighter(parent : OperationKind, child : Expression) -> bool:
    return child.is_leaf or child.kind.precedence > parent.precedence


def _needs_parens(parent : OperationKind, child : Expression, side : Associativity) -> bool:
    if _binds_tighter(parent, child):
        return False
    if child.kind.precedence == parent.precedence and parent.associativity == side:
        return False
    return True


def _wrap(text : str, parens : bool) -> str:
    return f"({text})" if parens else text


def render(expr : Expression) -> str:
    """Render an expression with the fewest parentheses precedence allows.

    Prefix operators parenthesise any operand that does not bind strictly
    tighter than themselves. An infix operand is bare when it binds tighter,
    or binds equally and sits on the side the operator associates towards.
    Everything else renders as ``name(arg,...)``.
    """
    texts : dict[int, str] = {}
    for node in expr.walk():
        if node.is_leaf:
            texts[id(node)] = str(node.value)
            continue

        kind = node.kind
        children = node.children
        kind.check_arity(len(children))
        args = [texts[id(child)] for child in children]

        match kind.fix:
            case Fix.Prefix:
                child, = children
                texts[id(node)] = kind.symbol + _wrap(args[0], not _binds_tighter(kind, child))
            case Fix.Infix:
                lhs, rhs = children
                texts[id(node)] = (
                    _wrap(args[0], _needs_parens(kind, lhs, Associativity.Left))
                    + kind.symbol
                    + _wrap(args[1], _needs_parens(kind, rhs, Associativity.Right))
                )
            case Fix.Function:
                texts[id(node)] = f"{kind.symbol}({','.join(args)})"
    return texts[id(expr)]
