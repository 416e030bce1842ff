from __future__ import annotations


def format_semester_label(semester_num: int, semesters_per_year: int | None):
    # Converting a global semester index (1...n) into UI friendly label
    # If semesters_per_year is given, labels become
    # 3 -> Year 2 - Semester 1
    if not semesters_per_year or semesters_per_year < 1:
        return f"Semester {semester_num}"

    year = (semester_num - 1) // semesters_per_year + 1
    term = (semester_num - 1) % semesters_per_year + 1
    return f"Year {year} - Semester {term}"


def label_schedule(schedule: dict[str, int], semesters_per_year: int | None) -> dict[str, str]:
    """course -> semester number  =>  course -> readable label"""
    return {code: format_semester_label(sem, semesters_per_year) for code, sem in schedule.items()}
