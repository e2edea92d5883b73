import re
from typing import Optional

from admitgroup.domain.models import GroupKey

# full-width （） and half-width () parentheses, any whitespace
# (\s also covers the ideographic space U+3000)
_STRIP_RE = re.compile(r"[（）()\s]")


def normalize_group_code(code: Optional[str]) -> str:
    """
    '(01)' / '（01）' / ' 01 ' → '01'; None / '' → ''.
    Idempotent: the output contains nothing the pattern removes.
    """
    if not code:
        return ""
    return _STRIP_RE.sub("", str(code)).strip()


def make_group_key(college_code: str, group_code: Optional[str], province: str, subject_track: str) -> GroupKey:
    return GroupKey(college_code, normalize_group_code(group_code), province, subject_track)
