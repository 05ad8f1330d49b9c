import os

# error messages are asserted on as plain text
os.environ["NO_COLOR"] = "1"
