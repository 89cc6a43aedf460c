class QuizSessionError(Exception):
    pass


class SetupMissingError(QuizSessionError):
    pass


class QuestionGenerationError(QuizSessionError):
    pass


class SessionNotFoundError(QuizSessionError):
    pass


class SessionFinishedError(QuizSessionError):
    pass


class SessionNotActiveError(QuizSessionError):
    pass


class AnswerRequiredError(QuizSessionError):
    pass


class InvalidChoiceError(QuizSessionError):
    pass


class NavigationError(QuizSessionError):
    pass


class ResultsMissingError(QuizSessionError):
    pass


class ResultsStorageError(QuizSessionError):
    pass
