"""
vCard 3.0 rendering for a single contact.
"""

from .models import ContactRecord

# (vCard property, record field) in output order
VCARD_PROPERTIES = (
    ("FN", "name"),
    ("ORG", "organization"),
    ("TITLE", "position"),
    ("EMAIL", "email"),
    ("TEL", "phone"),
    ("URL", "website"),
)


def render_vcard(record: ContactRecord) -> str:
    """Render a contact as a vCard block, emitting only present fields.

    The free-text address goes into the street component of ADR.
    """
    lines = ["BEGIN:VCARD", "VERSION:3.0"]

    for prop, field_name in VCARD_PROPERTIES:
        value = getattr(record, field_name)
        if value:
            lines.append(f"{prop}:{value}")

    if record.address:
        lines.append(f"ADR:;;{record.address};;;")

    lines.append("END:VCARD")
    return "\n".join(lines)
