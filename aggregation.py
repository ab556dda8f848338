# aggregation.py
# Подсчет статистики по отправленным ответам анкеты.
#
# Знаменатели разные:
#  - brand_ratings[...]['average_score'] делится на число оценок этого бренда;
#  - brand_ratings[...]['criteria_scores'][...] делится на общее число ответов,
#    так что пропущенная пара бренд/критерий учитывается как 0.

from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal

from models.response import STATUS_SUBMITTED

CENTS = Decimal('0.01')


def _average(total, count):
    # Половина округляется вверх, как toFixed(2) в старых отчетах: 4.125 -> 4.13.
    # Decimal(float) берет точное двоичное значение частного, поэтому 1.005 остается 1.0
    return float(Decimal(total / count).quantize(CENTS, rounding=ROUND_HALF_UP))


def _empty_statistics():
    return {
        'total_responses': 0,
        'brand_ratings': {},
        'brand_preferences': {},
        'criteria_averages': {},
    }


def calculate_statistics(questionnaire, responses):
    """
    Считает средние по брендам и критериям и число предпочтений по брендам.
    Черновики игнорируются. Пустой список ответов дает нулевую статистику.
    """
    submitted = [r for r in responses if r.status == STATUS_SUBMITTED]
    statistics = _empty_statistics()
    total_responses = len(submitted)
    statistics['total_responses'] = total_responses
    if not total_responses:
        return statistics

    brand_names = {brand.id: brand.name for brand in questionnaire.brands}

    brand_totals = defaultdict(lambda: {'total_score': 0, 'count': 0, 'criteria_sums': defaultdict(int)})
    criteria_totals = defaultdict(lambda: {'sum': 0, 'count': 0})
    preferences = defaultdict(int)

    for response in submitted:
        for answer in response.answers:
            if answer.rating is None:
                continue
            brand = brand_totals[answer.brand_id]
            brand['total_score'] += answer.rating
            brand['count'] += 1
            brand['criteria_sums'][answer.criterion] += answer.rating

            criterion = criteria_totals[answer.criterion]
            criterion['sum'] += answer.rating
            criterion['count'] += 1

        if response.preferred_brand_id is not None:
            preferences[response.preferred_brand_id] += 1

    for brand_id, totals in brand_totals.items():
        statistics['brand_ratings'][brand_id] = {
            'name': brand_names.get(brand_id),
            'total_score': totals['total_score'],
            'count': totals['count'],
            'average_score': _average(totals['total_score'], totals['count']) if totals['count'] else 0,
            'criteria_scores': {
                key: _average(score_sum, total_responses)
                for key, score_sum in totals['criteria_sums'].items()
            },
        }

    statistics['criteria_averages'] = {
        key: _average(totals['sum'], totals['count'])
        for key, totals in criteria_totals.items()
        if totals['count']
    }
    statistics['brand_preferences'] = {brand_id: count for brand_id, count in preferences.items() if count}

    return statistics
