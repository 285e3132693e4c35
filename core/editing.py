"""Resolve raw text-input events into before/after edits."""

INSERT_TEXT = 'insertText'
INSERT_FROM_PASTE = 'insertFromPaste'
DELETE_BACKWARD = 'deleteContentBackward'
DELETE_FORWARD = 'deleteContentForward'
INSERT_COMPOSITION_TEXT = 'insertCompositionText'

CLASSIFIED_INPUT_TYPES = (INSERT_TEXT, INSERT_FROM_PASTE, DELETE_BACKWARD, DELETE_FORWARD)


def predict_edit(prev_text: str, input_type: str, data: str | None = None,
                 selection_start: int | None = None,
                 selection_end: int | None = None) -> tuple[str, int] | None:
    """Predict the text produced by an input event.

    Returns (next_text, inserted_char_count), or None for event types that are
    not classified as an edit (composition previews, line breaks, cuts...).
    A collapsed selection deletes one character next to the caret; a range
    selection is replaced or removed as a whole.
    """
    start = selection_start if selection_start is not None else 0
    end = selection_end if selection_end is not None else start
    start = max(0, min(start, len(prev_text)))
    end = max(start, min(end, len(prev_text)))

    if input_type in (INSERT_TEXT, INSERT_FROM_PASTE):
        inserted = data or ''
        return prev_text[:start] + inserted + prev_text[end:], len(inserted)

    if input_type == DELETE_BACKWARD:
        del_start = max(start - 1, 0) if start == end else start
        return prev_text[:del_start] + prev_text[end:], 0

    if input_type == DELETE_FORWARD:
        del_end = min(end + 1, len(prev_text)) if start == end else end
        return prev_text[:start] + prev_text[del_end:], 0

    return None
