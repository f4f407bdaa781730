"""Example script: write DOT files for a ReLU expression and a single neuron."""
from scalargrad import Neuron, draw_dot, relu, value


if __name__ == "__main__":
    x = value(1.0, label='x')
    y = relu(x * 2.0 + 1.0)
    y.label = 'y'
    y.backward()
    draw_dot(y, "relu.dot")

    n = Neuron(2, activation='tanh')
    out = n([1.0, -2.0])
    out.backward()
    draw_dot(out, "neuron.dot")
    print("Wrote relu.dot and neuron.dot; render with: dot -Tsvg relu.dot -o relu.svg")
