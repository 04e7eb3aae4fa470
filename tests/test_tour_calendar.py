"""Tour generator and French date labels."""

from datetime import date

from distri.services.tour_calendar import (
    find_tour_by_start,
    format_french_date,
    generate_tours,
    get_tour,
    mondays_of_month,
)

TODAY = date(2026, 3, 2)


class TestCalendar:
    def test_mondays_of_month(self):
        assert mondays_of_month(2026, 2) == [date(2026, 2, d) for d in (2, 9, 16, 23)]
        assert mondays_of_month(2026, 3) == [date(2026, 3, d) for d in (2, 9, 16, 23, 30)]

    def test_first_tour(self):
        tour = generate_tours("Lyon", TODAY)[0]
        assert tour.index == 0
        assert tour.start_date == date(2026, 3, 2)
        assert tour.end_date == date(2026, 3, 9)
        assert tour.deadline == date(2026, 2, 15)
        assert tour.capacity == 5

    def test_every_tour_starts_on_a_monday(self):
        tours = generate_tours("Lyon", TODAY)
        assert all(t.start_date.weekday() == 0 for t in tours)
        assert [t.index for t in tours] == list(range(len(tours)))

    def test_window_is_twenty_four_months(self):
        tours = generate_tours("Lyon", TODAY)
        assert tours[-1].start_date.year == 2028
        assert tours[-1].start_date.month == 2
        months = {(t.start_date.year, t.start_date.month) for t in tours}
        assert len(months) == 24

    def test_index_lookup(self):
        assert get_tour("Lyon", 5, TODAY).start_date == date(2026, 4, 6)
        assert get_tour("Lyon", -1, TODAY) is None
        assert get_tour("Lyon", 10_000, TODAY) is None

    def test_find_by_start(self):
        assert find_tour_by_start("Lyon", date(2026, 4, 6), TODAY).index == 5
        assert find_tour_by_start("Lyon", date(2026, 4, 7), TODAY) is None

    def test_french_labels(self):
        assert format_french_date(date(2025, 6, 2)) == "2 juin 2025"
        assert format_french_date(date(2026, 8, 17)) == "17 août 2026"
        assert generate_tours("Lyon", TODAY)[0].label == "2 mars 2026 au 9 mars 2026"
