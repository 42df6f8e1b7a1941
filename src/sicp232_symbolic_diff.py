'''
symbolic differentiation, see chap 2.3.2 and exercise 2.56 to 2.58

deriv walks the expression tree and applies one rule per kind of expression
dc/dx = 0
dx/dx = 1, dy/dx = 0
d(u+v)/dx = du/dx + dv/dx
d(u*v)/dx = u*(dv/dx) + (du/dx)*v
d(u**n)/dx = n * u**(n-1) * du/dx

results are only built by the smart constructors, so they are simplified as they grow
the power rule assumes the exponent does not depend on x, we do not handle d(f(x)**g(x))

rules are looked up by expression class, the same way the evaluator dispatches
a new kind of expression can be differentiated by registering a rule via update_deriv_rules
'''

import inspect
from typing import Any, Callable, Dict, List, Type, TypeVar, Union

from sicp232_symbolic_expr import ConstantExpr, ExponentialExpr, ExprLike, Expression, ProductExpr, SumExpr, \
    TypeMismatchError, VariableExpr, addend, augend, base, exponent, expr_config, expr_flush, expr_panic, expr_print, \
    find_type, is_same_variable, is_variable, make_constant, make_exponentiation, make_product, make_sum, \
    make_variable, multiplicand, multiplier, stringify_expr, to_expr


GenericExpr = TypeVar('GenericExpr', bound=Expression)

DerivRecurFuncType = Callable[[Expression], Expression]
DerivFuncType = Callable[[Expression, VariableExpr, DerivRecurFuncType], Expression]

_deriv_rules: Dict[Type, DerivFuncType] = {}


def update_deriv_rules(rules: Dict[Type, DerivFuncType]):
    _deriv_rules.update(rules)


def deriv(expr: ExprLike, variable: ExprLike):
    expr = to_expr(expr)
    var = to_expr(variable)
    if not is_variable(var):
        expr_panic(TypeMismatchError(VariableExpr.kind, var))

    def deriv_recursive(expr: Expression) -> Expression:
        t = find_type(type(expr), _deriv_rules)
        f = _deriv_rules[t]
        res = f(expr, var, deriv_recursive)
        if expr_config['trace_deriv']:
            expr_print('deriv %s by %s = %s\n' % (stringify_expr(expr), stringify_expr(var), stringify_expr(res)))
        return res

    return deriv_recursive(expr)


'''differentiation rule definitions'''

DerivRuleType = Union[
    Callable[[], Expression],
    Callable[[GenericExpr], Expression],
    Callable[[GenericExpr, VariableExpr], Expression],
    Callable[[GenericExpr, VariableExpr, DerivRecurFuncType], Expression],
]


def deriv_rule_decorator(rule_func: DerivRuleType):
    arity = len(inspect.getfullargspec(rule_func).args)

    def _deriv_rule_wrapped(expr: Expression, var: VariableExpr, drv: DerivRecurFuncType):
        args: List[Any] = [expr, var, drv]
        return rule_func(*args[0:arity])
    return _deriv_rule_wrapped


@deriv_rule_decorator
def deriv_constant():
    return make_constant(0)


@deriv_rule_decorator
def deriv_variable(expr: VariableExpr, var: VariableExpr):
    return make_constant(1) if is_same_variable(expr, var) else make_constant(0)


@deriv_rule_decorator
def deriv_sum(expr: SumExpr, var: VariableExpr, drv: DerivRecurFuncType):
    return make_sum(drv(addend(expr)), drv(augend(expr)))


@deriv_rule_decorator
def deriv_product(expr: ProductExpr, var: VariableExpr, drv: DerivRecurFuncType):
    m1 = multiplier(expr)
    m2 = multiplicand(expr)
    return make_sum(make_product(m1, drv(m2)), make_product(drv(m1), m2))


@deriv_rule_decorator
def deriv_exponential(expr: ExponentialExpr, var: VariableExpr, drv: DerivRecurFuncType):
    '''power rule, exponent is treated as constant w.r.t. var'''
    b = base(expr)
    e = exponent(expr)
    return make_product(make_product(e, make_exponentiation(b, make_sum(e, -1))), drv(b))


def install_deriv_rules():
    rules = {
        ConstantExpr: deriv_constant,
        VariableExpr: deriv_variable,
        SumExpr: deriv_sum,
        ProductExpr: deriv_product,
        ExponentialExpr: deriv_exponential
    }
    update_deriv_rules(rules)


install_deriv_rules()


'''test'''


def rebuild(expr: Expression) -> Expression:
    '''rebuild bottom-up through smart constructors, a canonical tree comes back unchanged'''
    if isinstance(expr, SumExpr):
        return make_sum(rebuild(expr.addend), rebuild(expr.augend))
    elif isinstance(expr, ProductExpr):
        return make_product(rebuild(expr.multiplier), rebuild(expr.multiplicand))
    elif isinstance(expr, ExponentialExpr):
        return make_exponentiation(rebuild(expr.base), rebuild(expr.exponent))
    else:
        return expr


def test_one(expr: ExprLike, variable: ExprLike, dexpr_str_exp: str):
    dexpr = deriv(expr, variable)
    expr_str = stringify_expr(to_expr(expr))
    var_str = stringify_expr(to_expr(variable))
    dexpr_str = stringify_expr(dexpr)
    print('deriv(%s, %s) = %s' % (expr_str, var_str, dexpr_str))
    assert dexpr_str == dexpr_str_exp
    assert rebuild(dexpr) == dexpr


def test_one_panic(expr: ExprLike, variable: Any, panic: str):
    try:
        deriv(expr, variable)
    except TypeMismatchError as err:
        print('* panic: %s' % str(err))
        assert str(err) == panic
    else:
        assert False, 'expect panic: %s' % panic


def test_basic():
    x = make_variable('x')
    for k in [-5, 0, 1, 2, 10 ** 20]:
        assert deriv(make_constant(k), x) == make_constant(0)
    test_one(x, x, '1')
    test_one('x', 'x', '1')
    test_one('y', x, '0')
    test_one('', x, '0')
    test_one(x + 3, x, '1')
    test_one(x * 'y', x, 'y')
    print('----------')


def test_sum_product():
    x = make_variable('x')
    y = make_variable('y')
    test_one((x * y) * (x + 3), x, '((x * y) + (y * (x + 3)))')
    test_one('a' * make_variable('x1') + 'b' * make_variable('x2'), 'x1', 'a')
    test_one('a' * make_variable('x1') + 'b' * make_variable('x2'), 'x2', 'b')
    test_one(make_variable('x1') * 'x2' * (make_variable('x1') + 3), 'x1', '((x1 * x2) + (x2 * (x1 + 3)))')
    test_one(x + 3 * (x + (y + 2)), x, '4')
    test_one(x + 3 * (x + y + 2), x, '4')
    test_one(x * x, x, '(x + x)')
    print('----------')


def test_exponential():
    x = make_variable('x')
    y = make_variable('y')
    test_one(2 * x ** 4, x, '(8 * (x ** 3))')
    test_one(make_product(2, make_exponentiation(x, 4)), x, '(8 * (x ** 3))')
    test_one(2 * x ** 4 + 6 * y ** 2, y, '(12 * y)')
    test_one(x ** 2, x, '(2 * x)')
    test_one(y ** 3, x, '0')
    test_one((x + 1) ** 3, x, '(3 * ((x + 1) ** 2))')
    test_one((2 * x) ** 3, x, '((3 * ((2 * x) ** 2)) * 2)')
    test_one(x ** y, x, '(y * (x ** (y + -1)))')
    test_one(x ** -1, x, '(-1 * (x ** -2))')
    print('----------')


def test_linearity():
    x = make_variable('x')
    y = make_variable('y')
    samples = [make_constant(0), make_constant(4), x, y, x * y, x ** 3, 5 * x ** 2 + y, (x + y) * (x + 2)]
    for u in samples:
        for v in samples:
            assert deriv(make_sum(u, v), x) == make_sum(deriv(u, x), deriv(v, x))
    print('----------')


def test_panic():
    x = make_variable('x')
    test_one_panic(x + 1, 3, panic='type mismatch: expect variable, now constant 3')
    test_one_panic(x + 1, x + 1, panic='type mismatch: expect variable, now sum (x + 1)')
    test_one_panic(x + 1, None, panic='type mismatch: expect expression, integer or string, now NoneType None')
    print('----------')


def test_trace():
    x = make_variable('x')
    y = make_variable('y')
    expr_flush()
    expr_config['trace_deriv'] = True
    try:
        deriv(x * y, x)
    finally:
        expr_config['trace_deriv'] = False
    trace_str = expr_flush()
    print(trace_str, end='')
    assert trace_str == 'deriv y by x = 0\nderiv x by x = 1\nderiv (x * y) by x = y\n'
    deriv(x * y, x)
    assert expr_flush() == ''
    print('----------')


def test():
    test_basic()
    test_sum_product()
    test_exponential()
    test_linearity()
    test_panic()
    test_trace()


if __name__ == '__main__':
    test()
