"""Typed failures raised by the quiz core.

Every error carries a stable ``code`` so that clients can tell
"already finished" apart from "already answered" apart from "not yours".
"""


class QuizError(Exception):
    code = "quiz_error"
    status_code = 400
    default_message = "Quiz operation failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class NotFound(QuizError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found"


class Forbidden(QuizError):
    code = "forbidden"
    status_code = 403
    default_message = "Not allowed to access this quiz attempt"


class AlreadyCompleted(QuizError):
    code = "already_completed"
    status_code = 409
    default_message = "Quiz has already been completed"


class DuplicateAnswer(QuizError):
    code = "duplicate_answer"
    status_code = 409
    default_message = "Answer already submitted for this question"


class Empty(QuizError):
    code = "empty_skill"
    status_code = 400
    default_message = "No questions available for this skill"


class InvalidAnswer(QuizError):
    code = "invalid_answer"
    status_code = 400
    default_message = "Selected answer must be one of A, B, C or D"
