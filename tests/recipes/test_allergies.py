import pytest

from nomie.pipeline.recipes.allergies import AllergyList, normalize_allergies


class TestAllergyParsing:
    def test_lowercases_and_trims(self):
        allergies = AllergyList.parse("  Peanuts , SHELLFISH,milk ")
        assert allergies.tokens == ("peanuts", "shellfish", "milk")

    def test_deduplicates_keeping_first_position(self):
        allergies = AllergyList.parse("milk, Eggs, MILK, eggs, soy")
        assert allergies.tokens == ("milk", "eggs", "soy")

    def test_drops_empty_items(self):
        assert AllergyList.parse(",, peanuts ,,").tokens == ("peanuts",)

    @pytest.mark.parametrize("raw", [None, "", "   ", ", ,"])
    def test_empty_inputs(self, raw):
        allergies = AllergyList.parse(raw)
        assert len(allergies) == 0
        assert not allergies
        assert allergies.serialized == ""

    def test_accepts_iterables_and_allergy_lists(self):
        from_list = AllergyList.parse(["Peanuts", "tree nuts, Soy"])
        assert from_list.tokens == ("peanuts", "tree nuts", "soy")
        assert AllergyList.parse(from_list) == from_list


class TestAllergySerialization:
    def test_canonical_form_is_comma_space_joined(self):
        assert AllergyList.parse("a,b ,  c").serialized == "a, b, c"
        assert str(AllergyList.parse("a,b")) == "a, b"

    def test_normalization_is_idempotent(self):
        once = normalize_allergies(" Wheat,  peanuts, wheat ,Sesame")
        twice = normalize_allergies(once)
        assert once == "wheat, peanuts, sesame"
        assert twice == once

    def test_template_and_hard_ban_fallbacks(self):
        empty = AllergyList.parse("")
        assert empty.for_template() == "None"
        assert empty.for_hard_ban() == "none"

        filled = AllergyList.parse("Peanuts")
        assert filled.for_template() == "peanuts"
        assert filled.for_hard_ban() == "peanuts"

    def test_membership_is_case_insensitive(self):
        allergies = AllergyList.parse("peanuts")
        assert " Peanuts " in allergies
        assert "milk" not in allergies
