from tax_appeal.services.search_hits import best_hit, extract_search_hits, hit_zpid, is_search_hit


def test_props_list():
    response = {"props": [{"zpid": "1", "price": 10}, {"zpid": "2"}], "totalResultCount": 2}
    assert [h["zpid"] for h in extract_search_hits(response)] == ["1", "2"]


def test_results_wrapped_in_body():
    response = {"body": {"results": [{"zpid": 5, "address": "5 Oak Ln"}]}}
    hit = best_hit(response)
    assert hit_zpid(hit) == "5"


def test_single_object_response():
    response = {"zpid": 33998887, "address": "1290 London Dr, Columbus, OH 43221", "zestimate": 650000}
    assert best_hit(response) is response


def test_bare_list_response():
    assert best_hit([{"address": "1 A St"}, {"zpid": "9"}])["zpid"] == "9"


def test_duplicate_zpids_collapse():
    response = {"props": [{"zpid": "1", "price": 1}, {"zpid": 1, "price": 2}, {"address": "x"}]}
    hits = extract_search_hits(response)
    assert len(hits) == 2
    assert hits[0]["price"] == 1


def test_fallback_scan_finds_nested_hits():
    response = {"data": {"searchResults": {"listResults": [{"zpid": "77", "price": "$1"}]}}}
    assert best_hit(response)["zpid"] == "77"


def test_fallback_scan_is_depth_capped():
    deep = {"a": {"b": {"c": {"d": {"e": {"zpid": "too-deep"}}}}}}
    assert extract_search_hits(deep) == []


def test_hit_without_zpid_used_when_nothing_better():
    response = {"props": [{"address": "10 Sample Rd", "price": "512,340"}]}
    assert best_hit(response) == {"address": "10 Sample Rd", "price": "512,340"}


def test_no_hits():
    assert best_hit({}) is None
    assert best_hit({"props": []}) is None
    assert best_hit(None) is None
    assert best_hit({"message": "No results", "totalResultCount": 0}) is None


def test_is_search_hit_rules():
    assert is_search_hit({"zpid": 0})
    assert is_search_hit({"price": 0.0})
    assert not is_search_hit({"price": "  "})
    assert not is_search_hit({"zpid": True})
    assert not is_search_hit({"address": ""})
    assert not is_search_hit("123 Main St")
