"""
Правило выставления оценок.

Итоговый балл равен сумме баллов за задания и экзамен (каждый в диапазоне 0..100).
Буквенная оценка выбирается по первой подходящей границе в убывающей таблице.
"""

MIN_SCORE = 0
MAX_SCORE = 100
MAX_TOTAL = MAX_SCORE * 2

GRADE_BANDS = (
    (180, 'A+'),
    (160, 'A'),
    (150, 'A-'),
    (140, 'B+'),
    (130, 'B'),
    (120, 'B-'),
    (110, 'C+'),
    (100, 'C'),
    (90, 'C-'),
    (80, 'D+'),
    (70, 'D'),
)
FAIL_GRADE = 'F'

# Порядок оценок от лучшей к худшей, используется для распределений.
GRADE_ORDER = tuple(grade for _, grade in GRADE_BANDS) + (FAIL_GRADE,)


class InvalidScoreError(ValueError):
    pass


def calculate_grade(total):
    for threshold, grade in GRADE_BANDS:
        if total >= threshold:
            return grade
    return FAIL_GRADE


def validate_score(value):
    if value is None or not (MIN_SCORE <= value <= MAX_SCORE):
        raise InvalidScoreError('Marks must be between 0 and 100')
    return value


def grade_marks(assignment_marks, exam_marks):
    """Возвращает (итоговый балл, буквенная оценка) для пары баллов."""
    validate_score(assignment_marks)
    validate_score(exam_marks)
    total = assignment_marks + exam_marks
    return total, calculate_grade(total)


# Проходной итоговый балл: passing_percentage процентов от максимальной суммы.
# При значении по умолчанию 50 это 100 баллов, то есть оценка C и выше.
def pass_threshold(passing_percentage=50):
    return MAX_TOTAL * passing_percentage / 100


def is_passing(total, passing_percentage=50):
    return total >= pass_threshold(passing_percentage)
