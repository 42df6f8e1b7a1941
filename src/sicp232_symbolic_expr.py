'''
algebraic expressions for symbolic differentiation, see chap 2.3.2 and exercise 2.56 to 2.58

an expression is one of five classes: constant, variable, sum, product, exponential
compound expressions own their sub-expressions, and nothing is mutated after construction
so every transformation (simplification, differentiation) builds a new tree

sum, product and exponential should only be built by the smart constructors make_sum, make_product, make_exponentiation
they simplify at construction time, e.g. x+0 => x, x*1 => x, x*0 => 0, 2*3 => 6, x**1 => x
therefore a tree built by them never contains a node that these local rules would reduce again
there is no reordering or factoring, so x+x stays (x + x)

like the evaluator, operations (stringify, is_equal) are functions outside class, dispatched by class through rule tables
the only methods on expression are operators +, * and ** which just call the smart constructors
so we can write 2 * x ** 4 + 3 instead of make_sum(make_product(2, make_exponentiation(x, 4)), 3)
integers and strings are turned into constants and variables on the fly
'''

import sys
from typing import Any, Callable, ClassVar, Dict, List, Type, Union


'''
global config

with suppress_panic being True
error is raised as exception, so test can catch and check it
otherwise error message goes to stderr and process exits

with suppress_print being True
print will not go to console directly
instead it is buffered, and later explicitly dumps as string

with trace_deriv being True
differentiator prints every rule it applies
'''

expr_config = {
    'suppress_panic': True,
    'suppress_print': True,
    'trace_deriv': False
}


def expr_panic(err: Exception):
    if expr_config['suppress_panic']:
        raise err
    else:
        print(str(err), file=sys.stderr)
        sys.exit(1)


_expr_buf: List[str] = []


def expr_print(message: str):
    if expr_config['suppress_print']:
        _expr_buf.append(message)
    else:
        print(message, end='')


def expr_flush():
    res = ''.join(_expr_buf)
    _expr_buf.clear()
    return res


'''dynamic dispatching by type'''


def find_type(cur_type: Type[object], type_dict: Dict[Type, Any]):
    '''searching cur_type in the type hierarchy, until finding a base class in type_dict'''
    while cur_type != object:
        if cur_type in type_dict:
            return cur_type
        else:
            cur_type = cur_type.__base__
    return cur_type


'''expression classes'''


class Expression:
    '''
    kind is the human readable name used in error message

    equality is structural, hash is computed from the stringified form
    two equal expressions always stringify the same, so hash agrees with equality
    '''

    kind: ClassVar[str] = 'expression'

    def __add__(self, other: "ExprLike"):
        return make_sum(self, other)

    def __radd__(self, other: "ExprLike"):
        return make_sum(other, self)

    def __mul__(self, other: "ExprLike"):
        return make_product(self, other)

    def __rmul__(self, other: "ExprLike"):
        return make_product(other, self)

    def __pow__(self, other: "ExprLike"):
        return make_exponentiation(self, other)

    def __rpow__(self, other: "ExprLike"):
        return make_exponentiation(other, self)

    def __eq__(self, other: object):
        if not isinstance(other, Expression):
            return NotImplemented
        return is_equal_expr(self, other)

    def __hash__(self):
        return hash(stringify_expr(self))

    def __str__(self):
        return stringify_expr(self)

    def __repr__(self):
        return '%s(%s)' % (type(self).__name__, stringify_expr(self))


class ConstantExpr(Expression):
    kind = 'constant'

    def __init__(self, value: int):
        self.value = value


class VariableExpr(Expression):
    kind = 'variable'

    def __init__(self, name: str):
        self.name = name


class SumExpr(Expression):
    kind = 'sum'

    def __init__(self, addend: Expression, augend: Expression):
        self.addend = addend
        self.augend = augend


class ProductExpr(Expression):
    kind = 'product'

    def __init__(self, multiplier: Expression, multiplicand: Expression):
        self.multiplier = multiplier
        self.multiplicand = multiplicand


class ExponentialExpr(Expression):
    kind = 'exponentiation'

    def __init__(self, base: Expression, exponent: Expression):
        self.base = base
        self.exponent = exponent


ExprLike = Union[Expression, int, str]


'''errors'''


class TypeMismatchError(Exception):
    def __init__(self, expected: str, actual: object):
        self.expected = expected
        self.actual = actual

    def __str__(self) -> str:
        if isinstance(self.actual, Expression):
            actual_str = '%s %s' % (self.actual.kind, stringify_expr(self.actual))
        else:
            actual_str = '%s %r' % (type(self.actual).__name__, self.actual)
        return 'type mismatch: expect %s, now %s' % (self.expected, actual_str)


class UnsupportedOperationError(Exception):
    def __init__(self, message: str):
        self.message = message

    def __str__(self) -> str:
        return 'unsupported operation: %s' % self.message


'''literal constructors'''


def make_constant(value: int):
    # bool is a subclass of int, but True should not silently become 1
    if isinstance(value, bool) or not isinstance(value, int):
        expr_panic(TypeMismatchError('integer', value))
    return ConstantExpr(value)


def make_variable(name: str):
    if not isinstance(name, str):
        expr_panic(TypeMismatchError('string', name))
    return VariableExpr(name)


def to_expr(value: ExprLike) -> Expression:
    if isinstance(value, Expression):
        return value
    elif isinstance(value, str):
        return make_variable(value)
    elif isinstance(value, int) and not isinstance(value, bool):
        return make_constant(value)
    else:
        expr_panic(TypeMismatchError('expression, integer or string', value))


'''predicates'''


def is_constant(expr: Expression):
    return isinstance(expr, ConstantExpr)


def is_constant_value(expr: Expression, value: int):
    return isinstance(expr, ConstantExpr) and expr.value == value


def is_variable(expr: Expression):
    return isinstance(expr, VariableExpr)


def is_same_variable(v1: Expression, v2: Expression):
    return isinstance(v1, VariableExpr) and isinstance(v2, VariableExpr) and v1.name == v2.name


def is_sum(expr: Expression):
    return isinstance(expr, SumExpr)


def is_product(expr: Expression):
    return isinstance(expr, ProductExpr)


def is_exponentiation(expr: Expression):
    return isinstance(expr, ExponentialExpr)


'''
accessors

the differentiator only calls them after checking the predicate
calling them on the wrong kind of expression is a bug at the call site, so we panic
'''


def addend(expr: Expression) -> Expression:
    if not isinstance(expr, SumExpr):
        expr_panic(TypeMismatchError(SumExpr.kind, expr))
    return expr.addend  # type: ignore


def augend(expr: Expression) -> Expression:
    if not isinstance(expr, SumExpr):
        expr_panic(TypeMismatchError(SumExpr.kind, expr))
    return expr.augend  # type: ignore


def multiplier(expr: Expression) -> Expression:
    if not isinstance(expr, ProductExpr):
        expr_panic(TypeMismatchError(ProductExpr.kind, expr))
    return expr.multiplier  # type: ignore


def multiplicand(expr: Expression) -> Expression:
    if not isinstance(expr, ProductExpr):
        expr_panic(TypeMismatchError(ProductExpr.kind, expr))
    return expr.multiplicand  # type: ignore


def base(expr: Expression) -> Expression:
    if not isinstance(expr, ExponentialExpr):
        expr_panic(TypeMismatchError(ExponentialExpr.kind, expr))
    return expr.base  # type: ignore


def exponent(expr: Expression) -> Expression:
    if not isinstance(expr, ExponentialExpr):
        expr_panic(TypeMismatchError(ExponentialExpr.kind, expr))
    return expr.exponent  # type: ignore


'''
smart constructors

the order of the checks matters
in make_product, 0 is checked before 1, so 0*1 => 0
in make_exponentiation, exponent 0 is checked before folding, so 0**0 => 1
'''


def make_sum(a1: ExprLike, a2: ExprLike) -> Expression:
    a1 = to_expr(a1)
    a2 = to_expr(a2)
    if is_constant_value(a1, 0):
        return a2
    elif is_constant_value(a2, 0):
        return a1
    elif isinstance(a1, ConstantExpr) and isinstance(a2, ConstantExpr):
        return ConstantExpr(a1.value + a2.value)
    else:
        return SumExpr(a1, a2)


def make_product(m1: ExprLike, m2: ExprLike) -> Expression:
    '''
    besides the identities, a constant times a product led by a constant merges the coefficients
    e.g. 2*(4*x) => 8*x, this is what keeps the power rule result readable: d(2*x**4) => 8*x**3
    '''
    m1 = to_expr(m1)
    m2 = to_expr(m2)
    if is_constant_value(m1, 0) or is_constant_value(m2, 0):
        return ConstantExpr(0)
    elif is_constant_value(m1, 1):
        return m2
    elif is_constant_value(m2, 1):
        return m1
    elif isinstance(m1, ConstantExpr) and isinstance(m2, ConstantExpr):
        return ConstantExpr(m1.value * m2.value)
    elif isinstance(m1, ConstantExpr) and isinstance(m2, ProductExpr) and isinstance(m2.multiplier, ConstantExpr):
        return make_product(ConstantExpr(m1.value * m2.multiplier.value), m2.multiplicand)
    else:
        return ProductExpr(m1, m2)


def make_exponentiation(b: ExprLike, e: ExprLike) -> Expression:
    '''
    constant folding uses exact integer power
    a negative exponent would give a fraction, which a constant cannot hold
    '''
    b = to_expr(b)
    e = to_expr(e)
    if is_constant_value(e, 0):
        return ConstantExpr(1)
    elif is_constant_value(e, 1):
        return b
    elif isinstance(b, ConstantExpr) and isinstance(e, ConstantExpr):
        if e.value < 0:
            expr_panic(UnsupportedOperationError(
                'cannot fold %d ** %d into an integer constant' % (b.value, e.value)))
        return ConstantExpr(b.value ** e.value)
    else:
        return ExponentialExpr(b, e)


'''expression stringifier'''

StringifyExprFuncType = Callable[[Expression], str]

_stringify_expr_rules: Dict[Type, StringifyExprFuncType] = {}


def update_stringify_expr_rules(rules: Dict[Type, StringifyExprFuncType]):
    _stringify_expr_rules.update(rules)


def stringify_expr(expr: Expression):
    t = find_type(type(expr), _stringify_expr_rules)
    f = _stringify_expr_rules[t]
    return f(expr)


def stringify_expr_constant(expr: ConstantExpr):
    return str(expr.value)


def stringify_expr_variable(expr: VariableExpr):
    return expr.name


def stringify_expr_sum(expr: SumExpr):
    return '(%s + %s)' % (stringify_expr(expr.addend), stringify_expr(expr.augend))


def stringify_expr_product(expr: ProductExpr):
    return '(%s * %s)' % (stringify_expr(expr.multiplier), stringify_expr(expr.multiplicand))


def stringify_expr_exponential(expr: ExponentialExpr):
    return '(%s ** %s)' % (stringify_expr(expr.base), stringify_expr(expr.exponent))


def install_stringify_expr_rules():
    rules = {
        ConstantExpr: stringify_expr_constant,
        VariableExpr: stringify_expr_variable,
        SumExpr: stringify_expr_sum,
        ProductExpr: stringify_expr_product,
        ExponentialExpr: stringify_expr_exponential
    }
    update_stringify_expr_rules(rules)


'''expression equality checker'''

EqualityFuncType = Callable[[Expression, Expression], bool]

_is_equal_expr_rules: Dict[Type, EqualityFuncType] = {}


def update_is_equal_expr_rules(rules: Dict[Type, EqualityFuncType]):
    _is_equal_expr_rules.update(rules)


def is_equal_expr(x: Expression, y: Expression):
    if type(x) == type(y):
        t = find_type(type(x), _is_equal_expr_rules)
        f = _is_equal_expr_rules[t]
        return f(x, y)
    else:
        return False


def is_equal_constant(x: ConstantExpr, y: ConstantExpr):
    return x.value == y.value


def is_equal_variable(x: VariableExpr, y: VariableExpr):
    return x.name == y.name


def is_equal_sum(x: SumExpr, y: SumExpr):
    return is_equal_expr(x.addend, y.addend) and is_equal_expr(x.augend, y.augend)


def is_equal_product(x: ProductExpr, y: ProductExpr):
    return is_equal_expr(x.multiplier, y.multiplier) and is_equal_expr(x.multiplicand, y.multiplicand)


def is_equal_exponential(x: ExponentialExpr, y: ExponentialExpr):
    return is_equal_expr(x.base, y.base) and is_equal_expr(x.exponent, y.exponent)


def install_is_equal_expr_rules():
    rules = {
        ConstantExpr: is_equal_constant,
        VariableExpr: is_equal_variable,
        SumExpr: is_equal_sum,
        ProductExpr: is_equal_product,
        ExponentialExpr: is_equal_exponential
    }
    update_is_equal_expr_rules(rules)


'''
rules are installed on import, so expressions can be printed and compared right away
extensions can still replace or add rules via update_*_rules
'''


def install_rules():
    install_stringify_expr_rules()
    install_is_equal_expr_rules()


install_rules()


'''test'''


def test_one(expr: Expression, expr_str_exp: str):
    expr_str = stringify_expr(expr)
    print('%s: %s' % (expr.kind, expr_str))
    assert expr_str == expr_str_exp


def test_one_panic(func: Callable[..., Any], *args: Any, panic: str):
    try:
        func(*args)
    except (TypeMismatchError, UnsupportedOperationError) as err:
        print('* panic: %s' % str(err))
        assert str(err) == panic
    else:
        assert False, 'expect panic: %s' % panic


def sample_exprs():
    '''a few canonical expressions of every kind'''
    x = make_variable('x')
    y = make_variable('y')
    return [
        make_constant(0),
        make_constant(1),
        make_constant(-7),
        x,
        make_variable(''),
        make_sum(x, 3),
        make_product(x, y),
        make_exponentiation(x, 4),
        make_exponentiation(2, y),
        make_product(make_sum(x, y), make_exponentiation(y, x)),
    ]


def test_literal():
    test_one(make_constant(42), '42')
    test_one(make_constant(-3), '-3')
    test_one(make_variable('x'), 'x')
    test_one(to_expr(5), '5')
    test_one(to_expr('abc'), 'abc')
    x = make_variable('x')
    assert to_expr(x) is x
    test_one_panic(make_constant, 1.5, panic='type mismatch: expect integer, now float 1.5')
    test_one_panic(make_constant, True, panic='type mismatch: expect integer, now bool True')
    test_one_panic(make_variable, 3, panic='type mismatch: expect string, now int 3')
    test_one_panic(to_expr, None, panic='type mismatch: expect expression, integer or string, now NoneType None')
    print('----------')


def test_make_sum():
    x = make_variable('x')
    test_one(make_sum(x, 3), '(x + 3)')
    test_one(make_sum(3, x), '(3 + x)')
    test_one(make_sum(2, 3), '5')
    test_one(make_sum(-2, 2), '0')
    test_one(make_sum(x, x), '(x + x)')
    for e in sample_exprs():
        assert make_sum(e, 0) == e
        assert make_sum(0, e) == e
    for a in range(-3, 4):
        for b in range(-3, 4):
            assert make_sum(a, b) == make_constant(a + b)
    print('----------')


def test_make_product():
    x = make_variable('x')
    y = make_variable('y')
    test_one(make_product(x, y), '(x * y)')
    test_one(make_product(x, 0), '0')
    test_one(make_product(0, 1), '0')
    test_one(make_product(1, x), 'x')
    test_one(make_product(3, 4), '12')
    test_one(make_product(2, make_product(4, x)), '(8 * x)')
    test_one(make_product(-1, make_product(-1, x)), 'x')
    test_one(make_product(make_product(4, x), 2), '((4 * x) * 2)')
    test_one(make_product(x, make_product(4, y)), '(x * (4 * y))')
    for e in sample_exprs():
        assert make_product(e, 1) == e
        assert make_product(1, e) == e
        assert make_product(e, 0) == make_constant(0)
        assert make_product(0, e) == make_constant(0)
    for a in range(-3, 4):
        for b in range(-3, 4):
            assert make_product(a, b) == make_constant(a * b)
    print('----------')


def test_make_exponentiation():
    x = make_variable('x')
    test_one(make_exponentiation(x, 4), '(x ** 4)')
    test_one(make_exponentiation(2, 3), '8')
    test_one(make_exponentiation(0, 0), '1')
    test_one(make_exponentiation(-2, 3), '-8')
    test_one(make_exponentiation(x, -1), '(x ** -1)')
    test_one(make_exponentiation(2, 100), str(2 ** 100))
    test_one(make_exponentiation(x, make_sum(x, 1)), '(x ** (x + 1))')
    for e in sample_exprs():
        assert make_exponentiation(e, 0) == make_constant(1)
        assert make_exponentiation(e, 1) == e
    test_one_panic(make_exponentiation, 2, -1,
                   panic='unsupported operation: cannot fold 2 ** -1 into an integer constant')
    print('----------')


def test_operators():
    x = make_variable('x')
    y = make_variable('y')
    test_one(x + 3, '(x + 3)')
    test_one(3 + x, '(3 + x)')
    test_one(x * 'y', '(x * y)')
    test_one('y' * x, '(y * x)')
    test_one(2 * x ** 4 + 6 * y ** 2, '((2 * (x ** 4)) + (6 * (y ** 2)))')
    test_one(2 ** x, '(2 ** x)')
    test_one(x * 1 + 0, 'x')
    test_one_panic(lambda: x + 1.5, panic='type mismatch: expect expression, integer or string, now float 1.5')
    print('----------')


def test_predicates():
    x = make_variable('x')
    assert is_variable(x)
    assert not is_variable(make_constant(1))
    assert is_constant(make_constant(1))
    assert is_sum(x + 1)
    assert is_product(x * 2)
    assert is_exponentiation(x ** 2)
    assert not is_sum(x * 2)
    assert is_same_variable(x, make_variable('x'))
    assert not is_same_variable(x, make_variable('y'))
    assert not is_same_variable(make_constant(1), make_constant(1))
    assert is_same_variable(make_variable(''), make_variable(''))
    print('----------')


def test_accessors():
    x = make_variable('x')
    y = make_variable('y')
    s = make_sum(x, y)
    p = make_product(x, 3)
    e = make_exponentiation(y, 2)
    assert addend(s) == x and augend(s) == y
    assert multiplier(p) == x and multiplicand(p) == make_constant(3)
    assert base(e) == y and exponent(e) == make_constant(2)
    test_one_panic(addend, p, panic='type mismatch: expect sum, now product (x * 3)')
    test_one_panic(augend, x, panic='type mismatch: expect sum, now variable x')
    test_one_panic(multiplier, s, panic='type mismatch: expect product, now sum (x + y)')
    test_one_panic(multiplicand, make_constant(2), panic='type mismatch: expect product, now constant 2')
    test_one_panic(base, s, panic='type mismatch: expect exponentiation, now sum (x + y)')
    test_one_panic(exponent, p, panic='type mismatch: expect exponentiation, now product (x * 3)')
    print('----------')


def test_equal():
    x = make_variable('x')
    assert make_sum(x, 3) == make_sum(make_variable('x'), make_constant(3))
    assert make_sum(x, 3) != make_sum(3, x)
    assert make_constant(1) != make_variable('1')
    assert make_product(x, x) != make_exponentiation(x, 2)
    assert make_constant(2) != 2
    assert len({make_sum(x, 1), make_sum('x', 1), make_product(x, 1)}) == 2
    for e1 in sample_exprs():
        for e2 in sample_exprs():
            assert (e1 == e2) == (stringify_expr(e1) == stringify_expr(e2))
    print('----------')


def test_print():
    expr_print('abc')
    expr_print('\n')
    assert expr_flush() == 'abc\n'
    assert expr_flush() == ''
    print('----------')


def test_panic_exit():
    '''without suppress_panic, misuse prints to stderr and exits with 1'''
    expr_config['suppress_panic'] = False
    try:
        addend(make_variable('x'))
    except SystemExit as err:
        assert err.code == 1
    else:
        assert False, 'expect exit'
    finally:
        expr_config['suppress_panic'] = True
    print('----------')


def test():
    test_literal()
    test_make_sum()
    test_make_product()
    test_make_exponentiation()
    test_operators()
    test_predicates()
    test_accessors()
    test_equal()
    test_print()
    test_panic_exit()


if __name__ == '__main__':
    test()
