"""Invalid character detection for source members.

Control characters (other than line feed and carriage return) and the
C1 range 128-157 corrupt member data when written back, so they are
replaced with blanks when a member is opened.
"""

import logging

from qsysbridge.core.session import ConnectionSession
from qsysbridge.editor.host import EditorHost
from qsysbridge.models.document import OpenDocument

logger = logging.getLogger(__name__)

NEW_LINE_CODES = (10, 13)

WARNING_MESSAGE = (
    "This member contains characters that cannot be saved correctly. "
    "Replace them with blanks?"
)


def is_invalid_character(char: str) -> bool:
    code = ord(char)
    return (code < 32 and code not in NEW_LINE_CODES) or 128 <= code <= 157


def has_invalid_characters(text: str) -> bool:
    return any(is_invalid_character(char) for char in text)


def replace_invalid_characters(text: str) -> str:
    """Replace every invalid character with a blank, keeping line breaks."""
    return "".join(" " if is_invalid_character(char) else char for char in text)


def should_fix(session: ConnectionSession, host: EditorHost) -> bool:
    """Decide whether to clean a document, asking the user if needed.

    ``Always`` turns on ``auto_fix_invalid_characters`` for the connection.
    Dismissing the prompt counts as ``No``.
    """
    if session.settings.auto_fix_invalid_characters:
        return True

    chosen = host.show_message(WARNING_MESSAGE, "Yes", "Always", "No", level="warning")
    if chosen == "Always":
        session.update_settings(auto_fix_invalid_characters=True)
        return True
    return chosen == "Yes"


def check_document(session: ConnectionSession, host: EditorHost, document: OpenDocument) -> bool:
    """Clean invalid characters in an open member document.

    Returns:
        True if the document text was changed (and is now dirty).
    """
    if document.is_closed or not has_invalid_characters(document.text):
        return False
    if not should_fix(session, host):
        logger.debug("User kept invalid characters in %s", document.uri)
        return False

    document.text = replace_invalid_characters(document.text)
    document.is_dirty = True
    logger.info("Replaced invalid characters in %s", document.uri)
    return True
