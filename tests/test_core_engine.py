"""Tests for core engine components."""
import math
import pytest
import numpy as np
from scalargrad import (
    Node, value, add, sub, mul, div, pow, neg, relu, tanh, exp,
    backward, topological_order, zero_grad, zero_grad_graph,
)
from utils.exceptions import (
    DivisionByZeroError, DomainError, GraphMutationError, InvalidOperationError,
)


def numerical_gradients(build, values, h=1e-6):
    """Central-difference derivative of build(*leaves).data w.r.t. each leaf value."""
    grads = []
    for i in range(len(values)):
        up = list(values)
        down = list(values)
        up[i] += h
        down[i] -= h
        plus = build(*[Node(v) for v in up]).data
        minus = build(*[Node(v) for v in down]).data
        grads.append((plus - minus) / (2 * h))
    return grads


class TestNode:
    """Tests for Node construction and inspection."""

    def test_node_creation(self):
        """A lifted scalar is a leaf with zero gradient."""
        node = value(3.5)
        assert node.data == 3.5
        assert node.grad == 0.0
        assert node.gradient == 0.0
        assert node.operands == ()
        assert node.is_leaf

    def test_value_returns_existing_node(self):
        """Lifting a node returns the same instance."""
        node = Node(1.0)
        assert value(node) is node

    def test_identity_not_value_equality(self):
        """Two nodes with equal data are distinct graph vertices."""
        a, b = Node(1.0), Node(1.0)
        assert a != b
        assert len({a, b}) == 2

    def test_numpy_scalars_are_accepted(self):
        """numpy floats lift and combine from either side."""
        a = Node(np.float64(2.0))
        out = np.float64(3.0) * a
        assert isinstance(out, Node)
        assert out.data == 6.0

    def test_non_numeric_data_rejected(self):
        """Only real numbers can be lifted."""
        with pytest.raises(TypeError):
            value("1.0")
        with pytest.raises(TypeError):
            Node(True)

    def test_non_finite_data_rejected(self):
        """NaN and infinity never enter the graph."""
        with pytest.raises(InvalidOperationError):
            value(float('nan'))
        with pytest.raises(InvalidOperationError):
            value(float('inf'))

    def test_set_data_on_leaf(self):
        """Leaves can be updated in place."""
        a = Node(1.0)
        a.set_data(2.5)
        assert a.data == 2.5

    def test_set_data_on_derived_node_rejected(self):
        """Derived nodes are immutable."""
        out = Node(1.0) + Node(2.0)
        with pytest.raises(GraphMutationError):
            out.set_data(0.0)

    def test_unsupported_operand_type(self):
        """Arithmetic with non-numeric objects raises TypeError."""
        with pytest.raises(TypeError):
            Node(1.0) + "a"


class TestOperations:
    """Tests for forward values and graph wiring."""

    @pytest.mark.parametrize("op, args, expected", [
        (add, (2.0, 3.0), 5.0),
        (sub, (2.0, 3.0), -1.0),
        (mul, (2.0, 3.0), 6.0),
        (div, (3.0, 2.0), 1.5),
        (pow, (2.0, 3), 8.0),
        (neg, (2.0,), -2.0),
        (relu, (-2.0,), 0.0),
        (relu, (2.0,), 2.0),
        (tanh, (0.0,), 0.0),
        (exp, (0.0,), 1.0),
    ])
    def test_forward_values(self, op, args, expected):
        """Each operation computes its result eagerly."""
        assert op(*args).data == pytest.approx(expected)

    def test_operands_recorded_in_order(self):
        """A derived node keeps its operands, first operand first."""
        a, b = Node(2.0), Node(3.0)
        c = sub(a, b)
        assert c.operands == (a, b)
        assert c.op == '-'

    def test_scalar_promoted_to_constant_leaf(self):
        """Plain numbers become leaf operands."""
        a = Node(2.0)
        c = a * 4
        assert c.operands[0] is a
        assert c.operands[1].is_leaf
        assert c.operands[1].data == 4.0

    def test_pow_records_single_operand(self):
        """The exponent is a constant, not an operand."""
        a = Node(2.0)
        out = a ** 3
        assert out.operands == (a,)
        assert out.op == '**3'

    def test_sugar_matches_named_operations(self):
        """Operators build the same structure and gradients as named constructors."""
        a1, b1 = Node(3.0), Node(-2.0)
        sugared = -(a1 * b1 - a1 / b1 + 2)
        a2, b2 = Node(3.0), Node(-2.0)
        named = neg(add(sub(mul(a2, b2), div(a2, b2)), 2))

        assert sugared.data == named.data
        assert [n.op for n in topological_order(sugared)] == [n.op for n in topological_order(named)]

        sugared.backward()
        named.backward()
        assert a1.grad == a2.grad
        assert b1.grad == b2.grad

    def test_reflected_operators(self):
        """Scalars on the left produce the expected values."""
        a = Node(4.0)
        assert (2 + a).data == 6.0
        assert (2 - a).data == -2.0
        assert (2 * a).data == 8.0
        assert (2 / a).data == 0.5

    def test_operations_do_not_mutate_operands(self):
        """Construction leaves existing nodes untouched."""
        a, b = Node(2.0), Node(3.0)
        _ = a * b + a
        assert (a.data, a.grad, a.operands) == (2.0, 0.0, ())
        assert (b.data, b.grad, b.operands) == (3.0, 0.0, ())


class TestInvalidOperations:
    """Invalid operations fail at construction time."""

    def test_division_by_zero(self):
        """Dividing by a zero-valued node raises instead of producing inf."""
        with pytest.raises(DivisionByZeroError):
            div(Node(1.0), Node(0.0))

    def test_division_error_is_standard_exception(self):
        """The error can also be caught as ZeroDivisionError / ValueError."""
        with pytest.raises(ZeroDivisionError):
            Node(1.0) / 0
        with pytest.raises(ValueError):
            Node(1.0) / 0

    def test_fractional_power_of_negative_base(self):
        """Non-integer powers of negative numbers are undefined."""
        with pytest.raises(DomainError):
            pow(Node(-2.0), 0.5)

    def test_integer_power_of_negative_base(self):
        """Integer powers of negative numbers are fine."""
        out = pow(Node(-2.0), 3)
        out.backward()
        assert out.data == -8.0
        assert out.operands[0].grad == pytest.approx(12.0)

    def test_negative_power_of_zero(self):
        """Inverting zero is a division by zero."""
        with pytest.raises(DivisionByZeroError):
            pow(Node(0.0), -1)

    def test_root_of_zero_rejected(self):
        """The derivative of x**0.5 is unbounded at zero."""
        with pytest.raises(DomainError):
            pow(Node(0.0), 0.5)

    @pytest.mark.parametrize("k", [1.5, 2.5, -0.5])
    def test_fractional_power_of_zero(self, k):
        """Non-integer powers of a zero base are rejected like negative bases."""
        with pytest.raises(DomainError):
            pow(Node(0.0), k)

    def test_integer_power_of_zero(self):
        """Positive integer powers of zero are well defined."""
        a = Node(0.0)
        out = a ** 2
        out.backward()
        assert out.data == 0.0
        assert a.grad == 0.0

    def test_zero_power_of_zero(self):
        """x**0 is 1 with zero derivative, even at x == 0."""
        a = Node(0.0)
        out = a ** 0
        out.backward()
        assert out.data == 1.0
        assert a.grad == 0.0

    def test_node_exponent_rejected(self):
        """Exponents must be plain numbers."""
        with pytest.raises(TypeError):
            pow(Node(2.0), Node(2.0))
        with pytest.raises(TypeError):
            Node(2.0) ** Node(2.0)

    def test_overflow_rejected(self):
        """Results that overflow to infinity are rejected."""
        with pytest.raises(DomainError):
            exp(Node(1000.0))
        with pytest.raises(DomainError):
            Node(1e200) * Node(1e200)
        with pytest.raises(DomainError):
            Node(10.0) ** 400

    def test_error_details(self):
        """Errors carry structured details."""
        with pytest.raises(DivisionByZeroError) as info:
            div(Node(5.0), Node(0.0))
        payload = info.value.to_dict()
        assert payload['error_type'] == 'DivisionByZeroError'
        assert payload['details']['numerator'] == 5.0


class TestBackward:
    """Tests for the backward scheduler."""

    def test_backward_simple(self):
        """Product rule on two leaves."""
        a = Node(2.0)
        b = Node(3.0)
        c = a * b
        c.backward()
        assert a.grad == 3.0
        assert b.grad == 2.0
        assert c.grad == 1.0

    def test_diamond_accumulation(self):
        """Contributions through shared operands are summed."""
        a = Node(3.0)
        b = mul(a, a)
        c = add(b, a)
        backward(c)
        assert a.grad == 2 * a.data + 1

    def test_same_operand_twice(self):
        """a + a routes the gradient to a twice."""
        a = Node(1.5)
        out = a + a
        out.backward()
        assert a.grad == 2.0

    def test_leaf_isolation(self):
        """Leaves outside the traversed graph keep a zero gradient."""
        a, b, unused = Node(2.0), Node(3.0), Node(4.0)
        other = unused * 2
        out = a * b
        out.backward()
        assert unused.grad == 0.0
        assert other.grad == 0.0

    def test_relu_subgradient_at_zero(self):
        """ReLU passes no gradient at exactly zero."""
        a = Node(0.0)
        out = relu(a)
        out.backward()
        assert a.grad == 0.0

    def test_relu_gradient(self):
        """ReLU passes the gradient for positive inputs only."""
        pos, negative = Node(2.0), Node(-2.0)
        (relu(pos) + relu(negative)).backward()
        assert pos.grad == 1.0
        assert negative.grad == 0.0

    def test_reaccumulation_doubles_gradients(self):
        """A second pass without zeroing adds exactly the same amount again."""
        a, b = Node(2.0), Node(-3.0)
        hidden = a * b + a
        out = hidden * hidden / b
        out.backward()
        once = (a.grad, b.grad, hidden.grad)
        out.backward()
        assert (a.grad, b.grad, hidden.grad) == pytest.approx(tuple(2 * g for g in once))

    def test_gradient_accumulation_across_losses(self):
        """Backward on two roots sums their derivatives."""
        w = Node(1.5)
        shared = w * 2
        loss1 = shared * shared
        loss2 = shared + w
        loss1.backward()
        loss2.backward()
        # d(4w^2)/dw + d(3w)/dw
        assert w.grad == pytest.approx(8 * 1.5 + 3)

    def test_zero_grad_graph(self):
        """Gradients can be reset over a whole graph."""
        a, b = Node(2.0), Node(3.0)
        out = a * b + b
        out.backward()
        zero_grad_graph(out)
        assert all(n.grad == 0.0 for n in topological_order(out))
        out.backward()
        assert a.grad == 3.0
        assert b.grad == 3.0

    def test_zero_grad_nodes(self):
        """zero_grad resets only the given nodes."""
        a, b = Node(2.0), Node(3.0)
        (a * b).backward()
        zero_grad([a])
        assert a.grad == 0.0
        assert b.grad == 2.0

    def test_backward_returns_pass_gradients(self):
        """The returned table holds only this pass's contributions."""
        a = Node(2.0)
        out = a * 5
        out.backward()
        grads = backward(out)
        assert grads[a] == 5.0
        assert a.grad == 10.0

    def test_end_to_end_expression(self):
        """Reference expression mixing every operation."""
        a = Node(-4.0)
        b = Node(2.0)
        c = a + b
        d = a * b + b ** 3
        c = c + c + 1
        c = c + 1 + c + (-a)
        d = d + d * 2 + (b + a).relu()
        d = d + 3 * d + (b - a).relu()
        e = c - d
        f = e ** 2
        g = f / 2.0
        g = g + 10.0 / f
        g.backward()

        assert g.data == pytest.approx(24.7041, abs=1e-4)
        assert a.grad == pytest.approx(138.8338, abs=1e-4)
        assert b.grad == pytest.approx(645.5773, abs=1e-4)

    @pytest.mark.parametrize("build, values", [
        (lambda a, b: a * b + a / b - b ** 2, [1.3, -0.7]),
        (lambda a, b: tanh(a * b).exp() + relu(a - b), [0.4, -1.1]),
        (lambda a, b, c: (a * b + c) ** 3 / (c * c + 1), [0.5, 2.0, -1.5]),
        (lambda a, b: (a ** 0.5) * b - 1 / a, [2.3, 0.9]),
        (lambda a: (a * a + a) * (a - 3) + neg(a), [1.7]),
    ])
    def test_matches_finite_differences(self, build, values):
        """Analytic gradients agree with central differences."""
        leaves = [Node(v) for v in values]
        build(*leaves).backward()
        expected = numerical_gradients(build, values)
        for leaf, numeric in zip(leaves, expected):
            assert leaf.grad == pytest.approx(numeric, abs=1e-4)

    def test_intermediate_gradients_match_finite_differences(self):
        """Gradients of derived nodes agree with perturbing that node as a leaf."""
        a, b = Node(0.8), Node(-1.3)
        hidden = a * b + 0.5
        squashed = tanh(hidden)

        def head(s, h):
            return s * a + h ** 2 / b

        def from_hidden(h):
            return head(tanh(h), h)

        out = head(squashed, hidden)
        out.backward()

        h = 1e-6
        numeric_squashed = (head(Node(squashed.data + h), hidden).data
                            - head(Node(squashed.data - h), hidden).data) / (2 * h)
        numeric_hidden = (from_hidden(Node(hidden.data + h)).data
                          - from_hidden(Node(hidden.data - h)).data) / (2 * h)
        assert squashed.grad == pytest.approx(numeric_squashed, abs=1e-4)
        assert hidden.grad == pytest.approx(numeric_hidden, abs=1e-4)
        assert out.grad == 1.0

    def test_deep_chain(self):
        """Long chains do not hit the recursion limit."""
        x = Node(0.5)
        out = x
        for _ in range(5000):
            out = out + 0.0
        out.backward()
        assert x.grad == 1.0


class TestTopologicalOrder:
    """Tests for the traversal order."""

    def test_each_node_once(self):
        """Shared operands appear exactly once."""
        a = Node(2.0)
        b = a * a
        c = b + a
        order = topological_order(c)
        assert len(order) == 3
        assert len(set(order)) == 3

    def test_operands_before_consumers(self):
        """Every node comes after all of its operands; the root is last."""
        a, b = Node(1.0), Node(2.0)
        c = a * b
        d = c + a
        e = d * c
        order = topological_order(e)
        position = {node: i for i, node in enumerate(order)}
        assert order[-1] is e
        for node in order:
            for operand in node.operands:
                assert position[operand] < position[node]

    def test_deterministic(self):
        """Repeated traversals give the same order."""
        a, b = Node(1.0), Node(2.0)
        out = (a + b) * (a - b)
        assert topological_order(out) == topological_order(out)
        assert topological_order(out)[:2] == [a, b]

    def test_leaf_root(self):
        """A leaf root orders only itself and gets gradient 1."""
        a = Node(3.0)
        assert topological_order(a) == [a]
        a.backward()
        assert a.grad == 1.0


class TestActivations:
    """Tests for the supplemented activations."""

    def test_tanh_gradient(self):
        """d tanh(x)/dx = 1 - tanh(x)^2."""
        x = Node(0.3)
        out = x.tanh()
        out.backward()
        assert x.grad == pytest.approx(1 - math.tanh(0.3) ** 2)

    def test_exp_gradient(self):
        """d exp(x)/dx = exp(x)."""
        x = Node(0.7)
        out = x.exp()
        out.backward()
        assert x.grad == pytest.approx(math.exp(0.7))
