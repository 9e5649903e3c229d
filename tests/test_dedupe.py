from agrisync.services.dedupe import dedupe, merge_by_key


def test_dedupe_keeps_first_occurrence():
    records = [
        {"recId": "a", "v": 1},
        {"recId": "b", "v": 2},
        {"recId": "a", "v": 3},
        {"recId": "b", "v": 4},
        {"recId": "c", "v": 5},
    ]
    unique = dedupe(records, lambda r: r["recId"])
    assert unique == [{"recId": "a", "v": 1}, {"recId": "b", "v": 2}, {"recId": "c", "v": 5}]


def test_dedupe_composite_key():
    records = [
        {"y": 2024, "m": "01", "s": "x", "n": 1},
        {"y": 2024, "m": "01", "s": "x", "n": 2},
        {"y": 2024, "m": "02", "s": "x", "n": 3},
    ]
    unique = dedupe(records, lambda r: (r["y"], r["m"], r["s"]))
    assert [r["n"] for r in unique] == [1, 3]


def test_merge_crops_with_harvests():
    base = [
        {"cropId": 1, "cropName": "Monthong", "farmerId": "F1"},
        {"cropId": 2, "cropName": "Chanee", "farmerId": "F2"},
    ]
    harvests = [
        {"cropId": 2, "lotNumber": "L1"},
        {"cropId": 3, "lotNumber": "L2"},
    ]
    merged = merge_by_key(
        base, harvests, key="cropId",
        fields=("cropName", "farmerId"), enrich=("lotNumber",),
    )
    by_id = {m["cropId"]: m for m in merged}

    assert len(merged) == 3
    assert by_id[1]["lotNumber"] is None
    assert by_id[2] == {
        "cropId": 2, "cropName": "Chanee", "farmerId": "F2",
        "lotNumber": "L1", "source": "both",
    }
    assert by_id[3] == {
        "cropId": 3, "cropName": None, "farmerId": None,
        "lotNumber": "L2", "source": "extra",
    }


def test_merge_first_base_and_first_enrichment_win():
    base = [{"k": 1, "f": "first"}, {"k": 1, "f": "second"}]
    extra = [{"k": 1, "e": "x"}, {"k": 1, "e": "y"}]
    merged = merge_by_key(base, extra, key="k", fields=("f",), enrich=("e",))
    assert merged == [{"k": 1, "f": "first", "e": "x", "source": "both"}]


def test_merge_matches_numeric_and_text_ids():
    base = [{"cropId": 2, "cropName": "Chanee"}]
    harvests = [{"cropId": "2", "lotNumber": "L1"}, {"cropId": " 3 ", "lotNumber": "L2"}]
    merged = merge_by_key(
        base, harvests, key="cropId", fields=("cropName",), enrich=("lotNumber",),
    )

    assert len(merged) == 2
    assert merged[0] == {"cropId": 2, "cropName": "Chanee", "lotNumber": "L1", "source": "both"}
    assert merged[1]["source"] == "extra"
