"""
GidroAtlas Prompt Templates
===========================

System prompt, user-turn templates and the water object summary used for
embedding. All model-facing text lives here.
"""

from datetime import date
from typing import Optional

from ..rag.models import WaterObject


WATER_EXPERT_SYSTEM_PROMPT = """Ты - ГидроАтлас, эксперт-консультант по водным ресурсам и гидротехническим сооружениям Казахстана.

Твои основные задачи:
1. Отвечать на вопросы о водохранилищах, реках, озёрах и других водных объектах Казахстана
2. Предоставлять информацию о техническом состоянии гидротехнических сооружений
3. Объяснять приоритеты обследования объектов
4. Давать общую информацию о географии и водных ресурсах Казахстана

Правила ответа:
- Если предоставлен контекст из базы данных, используй его для точного ответа
- Если контекста нет или он не релевантен вопросу, отвечай на основе своих общих знаний
- Всегда отвечай на русском языке
- Будь информативным, но лаконичным
- Если не уверен в ответе, честно скажи об этом
"""

QUESTION_WITH_CONTEXT_TEMPLATE = """Контекст из базы данных водных объектов Казахстана:

{context}

Вопрос пользователя: {question}

Ответь на вопрос, используя предоставленный контекст. Если контекст не содержит нужной информации, дополни ответ своими знаниями."""

QUESTION_WITHOUT_CONTEXT_TEMPLATE = """Вопрос пользователя: {question}

В базе данных не найдено релевантной информации по этому вопросу.
Ответь на вопрос, используя свои общие знания о водных ресурсах и географии Казахстана.
Если вопрос выходит за рамки твоей экспертизы, скажи об этом."""

WATER_OBJECT_SUMMARY_TEMPLATE = """Название объекта: {name}
Область/Регион: {region}
Тип водного ресурса: {resource_type}
Тип воды: {water_type}
Наличие фауны: {fauna}
Техническое состояние: {condition} из 5 - {condition_text}
Дата паспорта: {passport_date}
Возраст паспорта: {passport_age} лет
Приоритет обследования: {priority_level} (score: {priority_score})
Координаты: широта {latitude}, долгота {longitude}"""

# Standalone document chunks are embedded with their document name
DOCUMENT_CHUNK_TEMPLATE = "Document: {document_name}\n\n{chunk}"

# User-facing fallbacks
GENERATION_FAILED_MESSAGE = "Не удалось сгенерировать ответ. Попробуйте переформулировать вопрос."
PROCESSING_ERROR_MESSAGE = "Произошла ошибка при обработке запроса. Попробуйте позже."


CONDITION_DESCRIPTIONS = {
    1: "критическое (требует немедленного обследования)",
    2: "плохое (требует обследования)",
    3: "удовлетворительное",
    4: "хорошее",
    5: "отличное",
}

# Priority score = (6 - technical condition) * 3 + passport age in years
TECHNICAL_CONDITION_BASE = 6
TECHNICAL_CONDITION_MULTIPLIER = 3
HIGH_PRIORITY_THRESHOLD = 12
MEDIUM_PRIORITY_THRESHOLD = 6


def get_condition_description(condition: int) -> str:
    return CONDITION_DESCRIPTIONS.get(condition, "неизвестно")


def get_priority_description(priority_score: int) -> str:
    if priority_score >= HIGH_PRIORITY_THRESHOLD:
        return "высокий"
    if priority_score >= MEDIUM_PRIORITY_THRESHOLD:
        return "средний"
    return "низкий"


def passport_age_years(passport_date: date, today: Optional[date] = None) -> int:
    """Whole years since the passport was issued (365-day years)."""
    today = today or date.today()
    return (today - passport_date).days // 365


def priority_score(technical_condition: int, passport_age: int) -> int:
    return (TECHNICAL_CONDITION_BASE - technical_condition) * TECHNICAL_CONDITION_MULTIPLIER + passport_age


def build_water_object_summary(obj: WaterObject, today: Optional[date] = None) -> str:
    """
    Render the deterministic text embedded for a water object.

    Field order is fixed: name, region, resource type, water type, fauna,
    condition, passport date and age, priority, coordinates.
    """
    age = passport_age_years(obj.passport_date, today)
    score = priority_score(obj.technical_condition, age)

    return WATER_OBJECT_SUMMARY_TEMPLATE.format(
        name=obj.name,
        region=obj.region,
        resource_type=obj.resource_type.label,
        water_type=obj.water_type.label,
        fauna="да, присутствует" if obj.has_fauna else "нет, отсутствует",
        condition=obj.technical_condition,
        condition_text=get_condition_description(obj.technical_condition),
        passport_date=obj.passport_date.strftime("%d.%m.%Y"),
        passport_age=age,
        priority_level=get_priority_description(score),
        priority_score=score,
        latitude=obj.latitude,
        longitude=obj.longitude,
    )


def build_document_chunk(document_name: str, chunk: str) -> str:
    return DOCUMENT_CHUNK_TEMPLATE.format(document_name=document_name, chunk=chunk)


def build_user_prompt(question: str, context: Optional[str] = None) -> str:
    """Pick the user-turn template depending on whether context is injected."""
    if not context or not context.strip():
        return QUESTION_WITHOUT_CONTEXT_TEMPLATE.format(question=question)
    return QUESTION_WITH_CONTEXT_TEMPLATE.format(context=context, question=question)
