"""plox: a tree-walking interpreter for a small, dynamically-typed, C-like scripting language.

For reference:
- `plox.lang`: everything around the language proper (tokens, scanner, errors, sessions, the shell)
- `plox.tree`: the tree itself and what walks it (ast, parser, environments, runtime objects, evaluator)

Program flow:
    1. Scanner: source text to a flat list of tokens
    2. Parser: tokens to a tree of statements, reporting (and recovering from) syntax errors
    3. Evaluator: walks the tree, with environments for scopes and runtime objects for functions, classes and
       instances
"""
