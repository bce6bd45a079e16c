from datetime import date

from placement_attendance.common.calendar import WorkCalendar
from placement_attendance.common.datetime_utils import DateRange


def test_every_day_calendar_counts_all_days():
    window = DateRange.of(date(2024, 3, 4), date(2024, 3, 10))
    assert WorkCalendar.every_day().working_days(window) == 7


def test_weekends_and_holidays_are_excluded():
    calendar = WorkCalendar.build(weekend_days=(5, 6), holidays=[date(2024, 3, 6)])
    window = DateRange.of(date(2024, 3, 4), date(2024, 3, 10))

    assert calendar.working_days(window) == 4
    assert not calendar.is_working_day(date(2024, 3, 9))


def test_next_working_day_skips_weekend_and_holiday():
    calendar = WorkCalendar.build(weekend_days=(5, 6), holidays=[date(2024, 3, 11)])

    assert calendar.next_working_day(date(2024, 3, 8)) == date(2024, 3, 12)
