# errors.py
# Типизированные ошибки, которые роуты превращают в HTTP-ответы


class TastingError(Exception):
    status_code = 500
    message = 'Произошла ошибка.'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self):
        return {'message': self.message}


class NotFound(TastingError):
    status_code = 404
    message = 'Не найдено.'


class Forbidden(TastingError):
    status_code = 403
    message = 'Доступ запрещен.'


class QuestionnaireClosed(Forbidden):
    message = 'Анкета закрыта, ответы больше не принимаются.'


class ValidationFailed(TastingError):
    status_code = 400
    message = 'Ответ содержит ошибки.'

    def __init__(self, errors, message=None):
        super().__init__(message)
        self.errors = dict(errors)

    def to_dict(self):
        return {'message': self.message, 'errors': self.errors}


class DuplicateSubmission(TastingError):
    status_code = 409
    message = 'Вы уже отправили ответ на эту анкету.'
