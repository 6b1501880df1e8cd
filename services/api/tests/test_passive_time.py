from julienned.parsing.passive_time import duration_to_minutes, extract_passive_minutes


def test_duration_to_minutes():
    assert duration_to_minutes("2", "hrs") == 120
    assert duration_to_minutes("1", "Hour") == 60
    assert duration_to_minutes("5", "mins") == 5
    assert duration_to_minutes("4-6", "minutes") == 4
    assert duration_to_minutes("1 to 2", "hours") == 60


def test_rise_time():
    assert extract_passive_minutes(["Let the dough rise for 1 hour."]) == 60


def test_sums_separate_waits():
    steps = ["Refrigerate for 2 hours.", "Bake, then let rest for 30 minutes."]
    assert extract_passive_minutes(steps) == 150


def test_overlapping_matches_count_once():
    assert extract_passive_minutes(["Allow to rise for 45 minutes."]) == 45


def test_range_takes_lower_bound():
    assert extract_passive_minutes(["Let rise for 1 to 2 hours"]) == 60


def test_overnight_defaults_to_eight_hours():
    assert extract_passive_minutes(["Cover and chill overnight."]) == 480


def test_long_fridge_time():
    assert extract_passive_minutes(["Marinate 24 hours in the fridge."]) == 1440


def test_active_steps_only():
    assert extract_passive_minutes(["Bake for 20 minutes.", "Serve."]) == 0
    assert extract_passive_minutes([]) == 0
