import pandas as pd

from core.batch import prepare_batch
from core.quality import DataQualityChecker, DataQualityIssue, assess_batch_quality


def issues_by_column(report):
    return {(i.column, i.issue_type): i for i in report.issues}


def test_clean_sample_only_flags_missing_checkpoint(sample_records):
    report = assess_batch_quality(prepare_batch(sample_records), "Abril")

    assert [(i.column, i.issue_type) for i in report.issues] == [("checkpoint", "invalid_value")]
    assert report.issues[0].count == 1
    assert report.summary() == {"source": "Abril", "total_rows": 6, "critical": 0, "warnings": 1, "info": 0}


def test_typical_sheet_problems(make_record):
    records = [
        make_record(work_order_id=""),
        make_record(requisition_id="REQ2", quantity_requested=2, quantity_short=5),
        make_record(requisition_id="REQ3", stock_primary=-3),
        make_record(date=None),
        make_record(product_code="B"),
        make_record(product_code="B"),
    ]
    report = assess_batch_quality(prepare_batch(records))
    found = issues_by_column(report)

    assert found[("work_order_id", "blank")].count == 1
    assert found[("quantity_short", "invalid_value")].count == 1
    assert found[("stock_primary", "outlier")].sample_values == [-3.0]
    assert found[("date", "blank")].count == 1

    duplicates = [i for i in report.issues if i.issue_type == "duplicate"]
    assert len(duplicates) == 1
    assert duplicates[0].severity == "info"
    assert duplicates[0].count == 2


def test_empty_batch_has_no_issues():
    report = assess_batch_quality(prepare_batch([]))
    assert report.issues == []
    assert not report.has_critical_issues


def test_blank_severity_scales_with_share():
    df = pd.DataFrame({"section": ["", "", "x", "y", "z"]})
    report = DataQualityChecker("test").check_blank_values(["section"]).run(df)

    assert report.has_critical_issues
    assert report.critical_issues[0].percentage == 40.0


def test_custom_checks_are_chained():
    def always_one(df):
        return [DataQualityIssue("any", "custom", "info", 1, 100.0)]

    report = DataQualityChecker("test").add_check(always_one).add_check(always_one).run(pd.DataFrame({"a": [1]}))
    assert len(report.issues) == 2
