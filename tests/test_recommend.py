from collections import Counter

import pytest

from second_class import catalog
from second_class.models import Activity
from second_class.recommend import Recommender, activity_text, cosine_similarity, tokenize
from second_class.util import strip_html


def make_activity(activity_id, name="", dept=None, module=None, applicants=None, **extra):
    data = {"id": activity_id, "itemName": name, "itemStatus": 26, "applyNum": applicants}
    if dept:
        data["businessDeptId"] = f"id-{dept}"
        data["businessDeptName"] = dept
    if module:
        data["module"] = module
        data["module_dictText"] = module.upper()
    data.update(extra)
    return Activity.from_dict(data)


def ids(activities):
    return [a.id for a in activities]


def test_strip_html_removes_tags_and_nbsp():
    text = strip_html("&nbsp;古琴<br />音乐会<b>夜</b>")
    assert "<" not in text and ">" not in text
    assert "\u00a0" not in text
    assert "古琴" in text and "音乐会" in text


def test_activity_text_uses_name_department_and_description():
    activity = make_activity("1", "Chess Night", dept="Chess Club", conceive="<p>Play <i>chess</i></p>")
    text = activity_text(activity)
    assert "Chess Night" in text and "Chess Club" in text
    assert "<p>" not in text and "chess" in text


def test_tokenize_drops_single_characters():
    tokens = tokenize(make_activity("1", "a chess b club"))
    assert "chess" in tokens and "club" in tokens
    assert all(len(t) > 1 for t in tokens)


def test_cosine_similarity():
    assert cosine_similarity(Counter(), Counter(a=1)) == 0.0
    assert cosine_similarity(Counter(a=2), Counter(a=5)) == pytest.approx(1.0)
    assert cosine_similarity(Counter(a=1), Counter(b=1)) == 0.0


def test_cold_start_returns_candidates_in_order():
    candidates = [make_activity(str(i), f"x{i}") for i in range(5)]
    assert ids(Recommender().rank([], candidates, limit=3)) == ["0", "1", "2"]


def test_history_items_never_recommended():
    history = [make_activity("h", "chess tournament", dept="Chess Club", module="z")]
    candidates = [
        make_activity("h", "chess tournament", dept="Chess Club", module="z"),
        make_activity("c", "painting"),
    ]
    assert ids(Recommender().rank(history, candidates, limit=5)) == ["c"]


def test_similar_text_ranks_first():
    history = [make_activity("h1", "chess tournament"), make_activity("h2", "chess lecture")]
    candidates = [
        make_activity("a", "football match"),
        make_activity("b", "chess workshop"),
        make_activity("c", "painting class"),
    ]
    assert ids(Recommender().rank(history, candidates, limit=1)) == ["b"]


def test_department_and_module_affinity():
    history = [make_activity(f"h{i}", "", dept="Art Center", module="m") for i in range(3)]
    candidates = [
        make_activity("none", ""),
        make_activity("module", "", module="m"),
        make_activity("dept", "", dept="Art Center"),
    ]
    assert ids(Recommender().rank(history, candidates)) == ["dept", "module", "none"]


def test_ties_keep_candidate_order():
    history = [make_activity("h", "chess")]
    candidates = [make_activity(c, "painting") for c in ("p", "q", "r")]
    assert ids(Recommender().rank(history, candidates, limit=3)) == ["p", "q", "r"]


def test_popularity_strategy_uses_labels_and_applicants():
    history = [make_activity("h", "", itemLable="l1", lableNames=["Volunteer"])]
    candidates = [
        make_activity("quiet", ""),
        make_activity("busy", "", applicants=100),
        make_activity("labelled", "", itemLable="l1", lableNames=["Volunteer"]),
    ]
    ranked = Recommender("popularity").rank(history, candidates)
    assert ids(ranked) == ["busy", "labelled", "quiet"]


def test_unknown_strategy():
    with pytest.raises(ValueError):
        Recommender("random")


def test_recommend_fetches_history_and_open_activities(client):
    client.pages[catalog.PARTICIPATED_ENDPOINT] = [{"id": "h", "itemName": "chess"}]
    client.pages[catalog.OPEN_ENDPOINT] = [
        {"id": "h", "itemName": "chess", "itemStatus": 26},
        {"id": "n", "itemName": "chess club", "itemStatus": 26},
    ]
    assert ids(Recommender().recommend(client, limit=10)) == ["n"]


def test_strip_html_drops_script_and_style_content():
    text = strip_html("<style>p {color: red}</style>讲座<script>alert('x')</script>")
    assert "讲座" in text
    assert "color" not in text and "alert" not in text
