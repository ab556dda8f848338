# validation.py
# Проверка ответа участника на соответствие структуре анкеты.
# Функции здесь ничего не пишут в базу и не бросают исключений на плохих данных:
# все найденные нарушения возвращаются разом, чтобы показать их пользователю списком.

from collections import namedtuple

from models.response import STATUS_DRAFT, STATUS_SUBMITTED

MIN_RATING = 1
MAX_RATING = 5

ValidationResult = namedtuple('ValidationResult', ['valid', 'errors'])


def normalize_id(value):
    """Приводит id из JSON к int. Строки из цифр тоже принимаются."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    return None


def _is_int(value):
    return isinstance(value, int) and not isinstance(value, bool)


def _is_comment(value):
    return value is None or isinstance(value, str)


def _rating_problem(rating, status):
    if status == STATUS_SUBMITTED:
        if not _is_int(rating) or not MIN_RATING <= rating <= MAX_RATING:
            return f'оценка должна быть целым числом от {MIN_RATING} до {MAX_RATING}'
        return None
    # В черновике 0 или отсутствие оценки означает "еще не заполнено"
    if rating is None:
        return None
    if not _is_int(rating) or not 0 <= rating <= MAX_RATING:
        return f'оценка в черновике должна быть пустой или целым числом от 0 до {MAX_RATING}'
    return None


def validate_response(questionnaire, payload, status):
    """
    Проверяет ответ для целевого статуса ('draft' или 'submitted').

    Структурные проверки (неизвестный критерий, неизвестный бренд) действуют всегда.
    Диапазон оценок и обязательный любимый бренд проверяются только для 'submitted'.
    """
    if status not in (STATUS_DRAFT, STATUS_SUBMITTED):
        raise ValueError(f'Unknown response status: {status!r}')

    if not isinstance(payload, dict):
        payload = {}
    errors = {}
    answer_problems = []

    brand_ids = questionnaire.brand_ids
    criterion_keys = set(questionnaire.criterion_keys)

    answers = payload.get('answers')
    if not isinstance(answers, list) or not answers:
        answer_problems.append('нужно заполнить хотя бы одну оценку')
        answers = []

    unknown_criteria = []
    unknown_brands = []
    item_problems = []
    for index, answer in enumerate(answers):
        if not isinstance(answer, dict):
            answer_problems.append(f'ответ #{index + 1} имеет неверный формат')
            continue

        criterion = answer.get('criterion')
        known = isinstance(criterion, str) and criterion in criterion_keys
        if not known and criterion not in unknown_criteria:
            unknown_criteria.append(criterion)

        brand_id = normalize_id(answer.get('brand_id'))
        if brand_id not in brand_ids and answer.get('brand_id') not in unknown_brands:
            unknown_brands.append(answer.get('brand_id'))

        problem = _rating_problem(answer.get('rating'), status)
        if problem:
            item_problems.append(f'{criterion} (бренд {answer.get("brand_id")}): {problem}')
        if not _is_comment(answer.get('comment')):
            item_problems.append(f'{criterion} (бренд {answer.get("brand_id")}): комментарий должен быть текстом')

    if unknown_criteria:
        answer_problems.append('неизвестные критерии: ' + ', '.join(str(c) for c in unknown_criteria))
    if unknown_brands:
        answer_problems.append('неизвестные бренды: ' + ', '.join(str(b) for b in unknown_brands))
    answer_problems.extend(item_problems)
    if answer_problems:
        errors['answers'] = '; '.join(answer_problems)

    brand_comments = payload.get('brand_comments') or []
    if not isinstance(brand_comments, list):
        errors['brand_comments'] = 'комментарии к брендам должны быть списком'
    else:
        bad_comment_brands = [
            str(c.get('brand_id')) if isinstance(c, dict) else repr(c)
            for c in brand_comments
            if not isinstance(c, dict) or normalize_id(c.get('brand_id')) not in brand_ids
        ]
        comment_problems = []
        if bad_comment_brands:
            comment_problems.append('неизвестные бренды: ' + ', '.join(bad_comment_brands))
        if any(isinstance(c, dict) and not _is_comment(c.get('comment')) for c in brand_comments):
            comment_problems.append('комментарий к бренду должен быть текстом')
        if comment_problems:
            errors['brand_comments'] = '; '.join(comment_problems)

    evaluation = payload.get('comparative_evaluation') or {}
    if not isinstance(evaluation, dict):
        errors['preferred_brand'] = 'сравнительная оценка имеет неверный формат'
    else:
        preferred = evaluation.get('preferred_brand_id')
        if preferred is None:
            if status == STATUS_SUBMITTED:
                errors['preferred_brand'] = 'выберите бренд, который понравился больше всего'
        elif normalize_id(preferred) not in brand_ids:
            errors['preferred_brand'] = f'бренд {preferred} не участвует в анкете'
        if not _is_comment(evaluation.get('comments')):
            problem = 'общий комментарий должен быть текстом'
            errors['preferred_brand'] = f"{errors['preferred_brand']}; {problem}" if 'preferred_brand' in errors else problem

    return ValidationResult(valid=not errors, errors=errors)


def check_completeness(questionnaire, ratings):
    """
    ratings - словарь {(brand_id, criterion): rating} уже объединенного ответа.
    Отправленный ответ должен содержать оценку 1..5 для каждой пары бренд x критерий.
    """
    missing = []
    for brand in questionnaire.brands:
        for key in questionnaire.criterion_keys:
            rating = ratings.get((brand.id, key))
            if not _is_int(rating) or not MIN_RATING <= rating <= MAX_RATING:
                missing.append(f'{brand.name}/{key}')
    if missing:
        return {'answers': 'не хватает оценок: ' + ', '.join(missing)}
    return {}


def validate_questionnaire(payload):
    """Проверка структуры анкеты при создании и редактировании. Возвращает словарь ошибок."""
    if not isinstance(payload, dict):
        return {'title': 'ожидается объект анкеты'}

    errors = {}
    title = payload.get('title')
    if not isinstance(title, str) or not title.strip():
        errors['title'] = 'название анкеты обязательно'

    brands = payload.get('brands')
    if not isinstance(brands, list) or len(brands) < 2:
        errors['brands'] = 'нужно минимум два бренда'
    elif any(not isinstance(b, dict) or not isinstance(b.get('name'), str) or not b['name'].strip()
             for b in brands):
        errors['brands'] = 'у каждого бренда должно быть название'

    criteria = payload.get('criteria')
    if not isinstance(criteria, list) or not criteria:
        errors['criteria'] = 'нужен хотя бы один критерий'
    else:
        keys = []
        for item in criteria:
            if (not isinstance(item, dict)
                    or not isinstance(item.get('key'), str) or not item['key'].strip()
                    or not isinstance(item.get('description'), str) or not item['description'].strip()):
                errors['criteria'] = 'у каждого критерия должны быть ключ и описание'
                break
            keys.append(item['key'].strip())
        else:
            duplicates = sorted({k for k in keys if keys.count(k) > 1})
            if duplicates:
                errors['criteria'] = 'ключи критериев повторяются: ' + ', '.join(duplicates)

    return errors
