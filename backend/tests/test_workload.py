from timetable_engine.schemas.generator import GenerationSettings
from timetable_engine.services.catalog import build_catalog
from timetable_engine.services.chromosome import Gene
from timetable_engine.services.workload import faculty_workload, seniority_band


def test_seniority_bands():
    assert seniority_band(None) == "Unspecified"
    assert seniority_band(0) == "Junior"
    assert seniority_band(4) == "Junior"
    assert seniority_band(5) == "Mid-Level"
    assert seniority_band(14) == "Mid-Level"
    assert seniority_band(15) == "Senior"


def test_workload_counts_generated_and_existing_hours(make_request):
    request = make_request(
        existing=[
            {"day": "Monday", "time": "09:00", "classId": "ece3a", "subjectId": "sig", "facultyId": "f2", "classroomId": "r102"},
        ]
    )
    catalog = build_catalog(request, GenerationSettings())
    genes = [
        Gene("Friday", "09:00", "cse3a", "CODECHEF", is_special_day=True),
        Gene("Monday", "10:00", "cse3a", "ds", "f1", "r101"),
        Gene("Monday", "11:00", "cse3a", "ds", "f1", "r101"),
        Gene("Tuesday", "09:00", "cse3a", "dm", "f2", "r101"),
    ]
    rows = {row.facultyId: row for row in faculty_workload(catalog, genes)}
    assert rows["f1"].assignedHours == 2
    assert rows["f1"].seniorityBand == "Mid-Level"
    assert rows["f2"].assignedHours == 2
    assert rows["f2"].seniorityBand == "Junior"
    assert rows["f2"].maxHours is None
