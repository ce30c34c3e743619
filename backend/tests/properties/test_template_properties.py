"""
Property-based tests for template substitution.

These hold for ANY template and value, not just hand-picked examples.
"""

from hypothesis import given, assume
from hypothesis import strategies as st

from core.template import PLACEHOLDER, substitute_variable


names = st.from_regex(r"[A-Za-z][A-Za-z0-9_]{0,8}", fullmatch=True)
text = st.text(alphabet=st.characters(exclude_characters="{}", exclude_categories=("Cs",)), max_size=20)
formats = st.sampled_from([None, "%s", "X%.4f", "%d", "E%.2f", "S%.0f"])


@st.composite
def templates(draw: st.DrawFn) -> str:
    """Literal text interleaved with placeholders."""
    parts = [draw(text)]
    for _ in range(draw(st.integers(min_value=0, max_value=4))):
        name = draw(names)
        fmt = draw(formats)
        parts.append("{%s}" % name if fmt is None else "{%s:%s}" % (name, fmt))
        parts.append(draw(text))
    return "".join(parts)


class TestSubstitutionProperties:
    """Invariants of substitute_variable."""

    @given(template=templates(), name=names, value=st.floats(allow_nan=False, allow_infinity=False))
    def test_absent_name_is_noop(self, template: str, name: str, value: float):
        """A name the template never mentions leaves it unchanged."""
        assume(name not in [m.group(1) for m in PLACEHOLDER.finditer(template)])
        assert substitute_variable(template, name, value) == template

    @given(prefix=text, suffix=text, name=names, fmt=formats)
    def test_none_substitutes_empty(self, prefix: str, suffix: str, name: str, fmt):
        """None removes the placeholder whatever its format."""
        placeholder = "{%s}" % name if fmt is None else "{%s:%s}" % (name, fmt)
        assert substitute_variable(prefix + placeholder + suffix, name, None) == prefix + suffix

    @given(template=templates(), name=names)
    def test_no_placeholder_for_name_remains(self, template: str, name: str):
        """After a pass for name, no placeholder for name is left."""
        result = substitute_variable(template, name, None)
        assert name not in [m.group(1) for m in PLACEHOLDER.finditer(result)]
