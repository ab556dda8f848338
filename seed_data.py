# seed_data.py
# Демонстрационные данные: запускается командой `flask seed`

import click

from extensions import db
from models import User, Questionnaire, Brand, Criterion, Response, Answer, BrandComment, ActivityLog


def seed_demo_data():
    # --- 1. ОЧИСТКА ДАННЫХ ---
    click.echo("Очистка старых данных...")
    db.create_all()
    # Идем в обратном порядке зависимостей
    db.session.query(ActivityLog).delete()
    db.session.query(Answer).delete()
    db.session.query(BrandComment).delete()
    db.session.query(Response).delete()
    db.session.query(Criterion).delete()
    db.session.query(Brand).delete()
    db.session.query(Questionnaire).delete()
    db.session.query(User).delete()
    db.session.commit()
    click.echo("Очистка завершена.")

    # --- 2. СОЗДАНИЕ ДАННЫХ ---
    click.echo("Добавление тестовых данных...")
    try:
        admin = User(code='000001', nickname='Организатор', role='admin')
        taster_1 = User(code='100001', nickname='Дегустатор 1', role='participant')
        taster_2 = User(code='100002', nickname='Дегустатор 2', role='participant')
        db.session.add_all([admin, taster_1, taster_2])
        db.session.commit()

        questionnaire = Questionnaire(
            title='Слепая дегустация йогуртов',
            created_by=admin.id,
            brands=[Brand(name='Бренд A', order=0), Brand(name='Бренд B', order=1)],
            criteria=[
                Criterion(key='appearance', description='Внешний вид', order=0),
                Criterion(key='flavor', description='Вкус', order=1),
            ],
        )
        db.session.add(questionnaire)
        db.session.commit()

        brand_a, brand_b = questionnaire.brands
        # Пример уже отправленного ответа, чтобы статистика была не пустой
        response = Response(
            questionnaire_id=questionnaire.id,
            participant_id=taster_1.id,
            status='submitted',
            preferred_brand_id=brand_a.id,
            answers=[
                Answer(brand_id=brand_a.id, criterion='appearance', rating=4),
                Answer(brand_id=brand_a.id, criterion='flavor', rating=5),
                Answer(brand_id=brand_b.id, criterion='appearance', rating=3),
                Answer(brand_id=brand_b.id, criterion='flavor', rating=4),
            ],
        )
        db.session.add(response)
        db.session.commit()

        click.echo("Тестовые данные успешно добавлены!")
    except Exception:
        db.session.rollback()
        raise
