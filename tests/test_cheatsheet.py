import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from warscroll_builder.data.warscroll import Ability, ArmyCollection, BattleTrait, Warscroll
from warscroll_builder.services import cheatsheet


def _unit(name: str, *abilities: Ability) -> Warscroll:
    return Warscroll(unit_name=name, faction="Stormcast Eternals", abilities=list(abilities))


def test_entries_follow_canonical_stage_order():
    abilities = [
        Ability(name="Lay Ambush", phase="Deployment", color="black"),
        Ability(name="Tactical Insight", phase="Start of Battle Round", color="black"),
        Ability(name="Rally Point", phase="Start of Turn", color="black"),
        Ability(name="Lightning Strike", phase="Hero Phase", color="yellow"),
        Ability(name="Sweeping Advance", phase="Movement Phase", color="grey"),
        Ability(name="Storm Volley", phase="Shooting Phase", color="blue"),
        Ability(name="Thundering Charge", phase="Charge Phase", color="orange"),
        Ability(name="Blade Storm", phase="Combat Phase", color="red"),
        Ability(name="Reforge", phase="End of Turn", color="purple"),
        Ability(name="Sigmarite Shields", timing="Passive", color="green"),
    ]
    units = [_unit(f"Card {index}", ability) for index, ability in enumerate(reversed(abilities))]
    entries = cheatsheet.build_cheat_sheet(units, [])
    assert [entry.stage for entry in entries] == list(cheatsheet.CHEAT_SHEET_STAGE_ORDER)
    assert [entry.ability.name for entry in entries] == [ability.name for ability in abilities]


def test_same_stage_sorts_by_card_name():
    liberators = _unit("Liberators", Ability(name="Lay Low the Tyrants", phase="Combat Phase"))
    aetherwings = _unit("Aetherwings", Ability(name="Watchful Guardians", phase="Combat Phase"))
    trait = BattleTrait(name="Scions of the Storm", abilities=[Ability(name="Shock Drop", phase="Combat Phase")])
    entries = cheatsheet.build_cheat_sheet([liberators, aetherwings], [trait])
    assert [entry.card_name for entry in entries] == ["Aetherwings", "Liberators", "Scions of the Storm"]


def test_stage_from_text_and_color():
    assert cheatsheet.resolve_stage(Ability(name="Ambush", text="Deploy this unit in reserve.")) == "Deployment Phase"
    assert (
        cheatsheet.resolve_stage(Ability(name="Omen", text="At the start of any round, roll a dice.", color="yellow"))
        == "Start of Battle Round"
    )
    assert cheatsheet.resolve_stage(Ability(name="Prayer", color="yellow")) == "Hero Phase"
    assert cheatsheet.resolve_stage(Ability(name="Aura", color="green")) == "Passive"
    assert cheatsheet.resolve_stage(Ability(name="Signal", color="black")) == "Start of Turn"
    assert (
        cheatsheet.resolve_stage(Ability(name="Signal", text="Once per battle round.", color="black"))
        == "Start of Battle Round"
    )


def test_explicit_phase_wins_over_passive_and_text():
    ability = Ability(name="Deploy Scouts", phase="Hero Phase", text="Deploy a unit.")
    assert cheatsheet.resolve_stage(ability) == "Hero Phase"


def test_unknown_stage_sorts_last():
    odd = _unit("Alpha", Ability(name="Odd", phase="Mystery Phase"))  # type: ignore[arg-type]
    normal = _unit("Omega", Ability(name="Normal", timing="Passive"))
    entries = cheatsheet.build_cheat_sheet([odd, normal], [])
    assert [entry.stage for entry in entries] == ["Passive", "Mystery Phase"]


def test_ability_labels():
    assert cheatsheet.ability_label(Ability(name="a", timing="Passive")) == "Passive"
    assert (
        cheatsheet.ability_label(
            Ability(name="b", timing="Reaction", reaction_ability_type=" Opponent declared a FIGHT ability ")
        )
        == "Reaction, Opponent declared a FIGHT ability"
    )
    assert (
        cheatsheet.ability_label(
            Ability(name="c", phase="Hero Phase", timing="Your", ability_type="Once Per Turn")
        )
        == "Once Per Turn, Your Hero Phase"
    )
    assert cheatsheet.ability_label(Ability(name="d", phase="Combat Phase")) == "Combat Phase"


def test_collection_cheat_sheet_ignores_dangling_ids():
    prosecutors = _unit("Prosecutors", Ability(name="Heralds", phase="Charge Phase"))
    vindictors = _unit("Vindictors", Ability(name="Spear Phalanx", phase="Combat Phase"))
    trait = BattleTrait(name="Scions of the Storm", abilities=[Ability(name="Shock Drop", phase="Deployment")])
    collection = ArmyCollection(
        name="Hammers",
        warscroll_ids=[prosecutors.id, "missing"],
        battle_trait_ids=[trait.id, "gone"],
    )
    entries = cheatsheet.build_collection_cheat_sheet(collection, [prosecutors, vindictors], [trait])
    assert [(entry.stage, entry.card_name) for entry in entries] == [
        ("Deployment Phase", "Scions of the Storm"),
        ("Charge Phase", "Prosecutors"),
    ]


def test_turn_boundaries_with_an_owner_in_text():
    assert (
        cheatsheet.resolve_stage(Ability(name="Vigil", text="At the start of your turn, heal 1.", color="grey"))
        == "Start of Turn"
    )
    assert (
        cheatsheet.resolve_stage(Ability(name="Herald", text="At the start of the battle round, pick 1.", color="grey"))
        == "Start of Battle Round"
    )


def test_names_within_a_stage_sort_alphabetically_ignoring_case_and_accents():
    units = [
        _unit(name, Ability(name="Shields", timing="Passive"))
        for name in ["Liberators", "aetherwings", "Éowyn Riders", "Zephyr"]
    ]
    entries = cheatsheet.build_cheat_sheet(units, [])
    assert [entry.card_name for entry in entries] == ["aetherwings", "Éowyn Riders", "Liberators", "Zephyr"]


def test_lowercase_name_sorts_before_capitalised_twin():
    units = [_unit(name, Ability(name="Shields", timing="Passive")) for name in ["Vanguard", "vanguard"]]
    entries = cheatsheet.build_cheat_sheet(units, [])
    assert [entry.card_name for entry in entries] == ["vanguard", "Vanguard"]


def test_unrecognized_color_has_no_stage_and_sorts_last():
    ability = Ability(name="Odd", color="teal")  # type: ignore[arg-type]
    assert cheatsheet.resolve_stage(ability) == cheatsheet.UNRECOGNIZED_STAGE
    entries = cheatsheet.build_cheat_sheet(
        [_unit("Alpha", ability), _unit("Omega", Ability(name="Normal", timing="Passive"))], []
    )
    assert [entry.card_name for entry in entries] == ["Omega", "Alpha"]
