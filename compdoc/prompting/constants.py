"""Prompt text used when asking a model for component documentation."""

SYSTEM_PROMPT = (
    "You are a React documentation specialist who writes precise and helpful "
    "JSDoc comments."
)

PROMPT_TEMPLATE = """\
Write JSDoc documentation for the following React {kind_label}.

Component Name: {name}
File Path: {file} (line {line}, column {column})
{wrapper_line}Component Code:
```{fence}
{source}
```

The comment must cover:
1. What the component does
2. Every prop it accepts, with types and descriptions
3. What it returns
4. Side effects or other important notes
5. A short usage example

Respond with a JSON object containing a single field "docstring" whose value
is the complete JSDoc comment, starting with /** and ending with */.
"""

KIND_LABELS = {
    "FunctionDeclaration": "function component",
    "ArrowDeclaration": "arrow function component",
    "ClassDeclaration": "class component",
    "StyledOrHocDeclaration": "styled or higher-order component",
}
