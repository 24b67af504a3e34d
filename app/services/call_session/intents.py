"""Classification of caller input collected by a Gather."""
from enum import Enum
from typing import Optional


class CallerIntent(str, Enum):
    MORE_INFO = "more_info"
    OPT_OUT = "opt_out"
    UNRECOGNIZED = "unrecognized"


MORE_INFO_DIGIT = "1"
OPT_OUT_DIGIT = "2"


def classify_input(
    digits: Optional[str],
    speech_result: Optional[str],
    affirmative_keyword: str,
    negative_keyword: str,
) -> CallerIntent:
    """
    Map a keypress or utterance to a caller intent.

    A recognized digit wins over speech. Keywords match as case-insensitive
    substrings, affirmative first.
    """
    digits = (digits or "").strip()
    speech = (speech_result or "").lower()

    if digits == MORE_INFO_DIGIT:
        return CallerIntent.MORE_INFO
    if digits == OPT_OUT_DIGIT:
        return CallerIntent.OPT_OUT
    if affirmative_keyword and affirmative_keyword.lower() in speech:
        return CallerIntent.MORE_INFO
    if negative_keyword and negative_keyword.lower() in speech:
        return CallerIntent.OPT_OUT
    return CallerIntent.UNRECOGNIZED
