import pytest

from conftest import FakeCategoryNamer

from merchandising.core.facets import BuildWebFacetService, make_list_from_value, yes_no
from merchandising.errors import FacetValueException
from merchandising.schemas import AttributeFilter, CategoryFilter, PriceRange


def _service(names=None, missing=()):
    return BuildWebFacetService(FakeCategoryNamer(names or {42: "Electronics/Phones"}, missing=missing))


def test_category_and_multiselect_filters(store):
    filters = [
        CategoryFilter(category_id=42),
        AttributeFilter(attribute_code="color", frontend_input="multiselect", value=10, label="Red"),
    ]
    include = _service().normalize(filters, store)
    assert include.categories == ["Electronics/Phones"]
    assert include.custom_fields == {"color": ["Red"]}
    assert include.brands == []
    assert include.price is None


def test_price_range_is_ordered(store):
    filters = [AttributeFilter(attribute_code="price", frontend_input="price", value=[100, 50])]
    include = _service().normalize(filters, store)
    assert include.price == PriceRange(min=50, max=100)


def test_price_value_that_is_not_numbers_fails(store):
    filters = [AttributeFilter(attribute_code="price", frontend_input="price", value="cheap")]
    with pytest.raises(FacetValueException):
        _service().normalize(filters, store)


@pytest.mark.parametrize(
    "raw, expected",
    [(True, "Yes"), (False, "No"), ("1", "Yes"), ("0", "No"), (1, "Yes"), (0, "No")],
)
def test_boolean_attributes_become_yes_or_no(store, raw, expected):
    filters = [AttributeFilter(attribute_code="waterproof", frontend_input="boolean", value=raw)]
    include = _service().normalize(filters, store)
    assert include.custom_fields == {"waterproof": [expected]}
    assert all(isinstance(v, str) for v in include.custom_fields["waterproof"])


def test_new_attribute_is_normalized_as_boolean(store):
    filters = [AttributeFilter(attribute_code="new", frontend_input="boolean", value="1")]
    include = _service().normalize(filters, store)
    assert include.custom_fields == {"new": ["Yes"]}


def test_brand_attribute_matches_case_insensitively(store):
    filters = [AttributeFilter(attribute_code="Manufacturer", frontend_input="select", value=20, label="Acme")]
    include = _service().normalize(filters, store)
    assert include.brands == ["Acme"]
    assert include.custom_fields == {}


def test_same_custom_field_keeps_one_list(store):
    filters = [
        AttributeFilter(attribute_code="color", frontend_input="select", value=10, label="Red"),
        AttributeFilter(attribute_code="color", frontend_input="select", value=11, label="Blue"),
    ]
    include = _service().normalize(filters, store)
    assert include.custom_fields == {"color": ["Blue"]}


def test_date_and_unknown_inputs_contribute_nothing(store):
    filters = [
        AttributeFilter(attribute_code="news_from_date", frontend_input="date", value="2024-01-01"),
        AttributeFilter(attribute_code="description", frontend_input="textarea", value="soft"),
        AttributeFilter(attribute_code="size", frontend_input=None, value="M"),
        AttributeFilter(attribute_code=None, frontend_input="select", label="Red"),
    ]
    include = _service().normalize(filters, store)
    assert include.is_empty()


def test_unresolvable_categories_are_skipped(store):
    service = _service(names={7: None}, missing={99})
    filters = [
        CategoryFilter(category_id=7),
        CategoryFilter(category_id=99),
        AttributeFilter(attribute_code="color", frontend_input="select", value=10, label="Red"),
    ]
    include = service.normalize(filters, store)
    assert include.categories == []
    assert include.custom_fields == {"color": ["Red"]}


def test_build_facets_keeps_filters_normalized_before_a_failure(store):
    filters = [
        AttributeFilter(attribute_code="color", frontend_input="select", value=10, label="Red"),
        AttributeFilter(attribute_code="price", frontend_input="price", value={"from": 1}),
        AttributeFilter(attribute_code="activity", frontend_input="multiselect", value=30, label="Running"),
    ]
    facets = _service().build_facets(filters, store)
    assert facets.include_filters.custom_fields == {"color": ["Red"]}
    assert facets.exclude_filters.is_empty()


def test_build_facets_without_filters_is_empty(store):
    facets = _service().build_facets([], store)
    assert facets.include_filters.is_empty()
    assert facets.exclude_filters.is_empty()


@pytest.mark.parametrize("value", ["Red", 42, 3.5])
def test_scalars_become_single_element_lists(store, value):
    assert make_list_from_value(store, "color", value) == [value]


def test_lists_pass_through(store):
    assert make_list_from_value(store, "color", ["Red", "Blue"]) == ["Red", "Blue"]


def test_booleans_become_yes_no_lists(store):
    assert make_list_from_value(store, "new", True) == ["Yes"]
    assert make_list_from_value(store, "new", False) == ["No"]


@pytest.mark.parametrize("value", [None, {"a": 1}, object()])
def test_non_coercible_values_fail(store, value):
    with pytest.raises(FacetValueException) as excinfo:
        make_list_from_value(store, "color", value)
    assert excinfo.value.field_name == "color"
    assert excinfo.value.value is value
    assert excinfo.value.store == store


def test_yes_no_strings():
    assert yes_no("no") == "No"
    assert yes_no("Yes") == "Yes"
    assert yes_no("") == "No"
