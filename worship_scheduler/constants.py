"""Fixed business rules shared by the scheduling engines."""

# Safety valve for unterminated series, per generator call. Callers that need a
# longer horizon resume after the last date of a full batch.
MAX_GENERATED_OCCURRENCES = 52

# Roles allowed to create, edit, and auto-staff events.
SCHEDULER_ROLES = frozenset({"DIRECTOR", "ASSOCIATE_DIRECTOR", "PASTOR"})

EDIT_SCOPE_FUTURE = "future"
EDIT_SCOPE_ALL = "all"

# Role name keyword -> instruments/skills that qualify for it.
# Matched by containment against the lower-cased role name, in insertion order.
ROLE_SKILL_MAP: dict[str, tuple[str, ...]] = {
    "accompanist": ("accompanist", "pianist", "organist", "piano", "organ"),
    "pianist": ("pianist", "accompanist", "piano"),
    "organist": ("organist", "accompanist", "organ"),
    "vocalist": ("vocalist", "cantor", "vocals"),
    "cantor": ("cantor", "vocalist", "vocals"),
    "guitarist": ("guitarist", "guitar"),
    "drummer": ("drummer", "drums", "percussion"),
    "bassist": ("bassist", "bass"),
    "violinist": ("violinist", "violin"),
    "musician": (
        "musician", "accompanist", "pianist", "organist", "vocalist", "cantor",
        "guitarist", "drummer", "bassist", "violinist",
    ),
}

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")
