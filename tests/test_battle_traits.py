import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from warscroll_builder import config
from warscroll_builder.services import battle_traits

NS = "http://www.battlescribe.net/schema/catalogueSchema"
SCOURGE_PUBLICATION = "pub-sog"


def catalogue(body: str, name: str = "Fyreslayers") -> str:
    return f'<catalogue xmlns="{NS}" id="cat-{name}" name="{name}">{body}</catalogue>'


def ability_entry(entry_id: str, name: str, ability: str | None = None, attrs: str = "") -> str:
    ability = ability or name
    return (
        f'<selectionEntry id="{entry_id}" name="{name}" type="upgrade"{attrs}><profiles>'
        f'<profile id="p-{entry_id}" name="{ability}" typeName="Ability (Passive)"><characteristics>'
        f'<characteristic name="Effect">Effect of {ability}.</characteristic>'
        "</characteristics></profile></profiles></selectionEntry>"
    )


def spell_entry(entry_id: str, name: str) -> str:
    return (
        f'<selectionEntry id="{entry_id}" name="{name}" type="upgrade"><profiles>'
        f'<profile id="p-{entry_id}" name="{name}" typeName="Ability (Spell)"><characteristics>'
        '<characteristic name="Timing">Your Hero Phase</characteristic>'
        '<characteristic name="Casting Value">7</characteristic>'
        '<characteristic name="Effect">Inflict D3 mortal damage.</characteristic>'
        "</characteristics></profile></profiles></selectionEntry>"
    )


FACTION_XML = catalogue(
    "<sharedSelectionEntryGroups>"
    '<selectionEntryGroup id="g-heroic" name="Heroic Traits"><selectionEntries>'
    + ability_entry("t-endurance", "Fiery Endurance")
    + ability_entry("t-wounds", "Battle Wounds")
    + "</selectionEntries><selectionEntryGroups>"
    '<selectionEntryGroup id="g-nested" name="Oaths"><selectionEntries>'
    + ability_entry("t-oath", "Oathbound (Scourge of Ghyran)", "Oath of Grimnir")
    + "</selectionEntries></selectionEntryGroup>"
    "</selectionEntryGroups></selectionEntryGroup>"
    '<selectionEntryGroup id="g-artefacts" name="Artefacts of Power"><entryLinks>'
    '<entryLink id="l-sword" name="Ashen Sword" targetId="t-sword" type="selectionEntry"/>'
    "</entryLinks></selectionEntryGroup>"
    '<selectionEntryGroup id="g-lores" name="Spell Lores"><entryLinks>'
    '<entryLink id="l-lore" name="Lore of the Searing Flame" targetId="lore-flame" type="selectionEntryGroup"/>'
    '<entryLink id="l-missing" name="Lore of Ash" targetId="lore-missing" type="selectionEntryGroup"/>'
    "</entryLinks></selectionEntryGroup>"
    "</sharedSelectionEntryGroups>"
    "<sharedSelectionEntries>"
    + ability_entry("t-sword", "Ashen Sword")
    + ability_entry("t-lodge", "Lords of the Lodge")
    + "</sharedSelectionEntries>"
)

LORES_XML = catalogue(
    "<sharedSelectionEntryGroups>"
    f'<selectionEntryGroup id="lore-flame" name="Lore of the Searing Flame" publicationId="{SCOURGE_PUBLICATION}">'
    "<selectionEntries>"
    + spell_entry("s-ire", "Molten Ire")
    + "</selectionEntries><entryLinks>"
    '<entryLink id="l-ward" name="Fiery Ward" targetId="s-ward" type="selectionEntry"/>'
    "</entryLinks></selectionEntryGroup>"
    "</sharedSelectionEntryGroups>"
    "<sharedSelectionEntries>" + spell_entry("s-ward", "Fiery Ward") + "</sharedSelectionEntries>",
    name="Lores",
)


def _by_name(traits):
    return {trait.name: trait for trait in traits}


def test_group_entries_become_typed_traits():
    result = battle_traits.parse_battle_trait_cat_xml(FACTION_XML)
    traits = _by_name(result.traits)
    assert result.faction == "Fyreslayers"
    assert traits["Fiery Endurance"].trait_type == "Heroic traits"
    assert traits["Fiery Endurance"].abilities[0].timing == "Passive"
    assert traits["Lords of the Lodge"].trait_type == "Battle traits"


def test_nested_groups_report_top_level_group():
    traits = _by_name(battle_traits.parse_battle_trait_cat_xml(FACTION_XML).traits)
    oath = traits["Oathbound"]
    assert oath.trait_type == "Heroic traits"
    assert oath.subfaction == "Scourge of Ghyran"
    assert oath.abilities[0].name == "Oath of Grimnir"


def test_denied_names_are_skipped():
    traits = _by_name(battle_traits.parse_battle_trait_cat_xml(FACTION_XML).traits)
    assert "Battle Wounds" not in traits


def test_linked_entry_is_kept_once_with_first_group():
    traits = battle_traits.parse_battle_trait_cat_xml(FACTION_XML).traits
    swords = [trait for trait in traits if trait.name == "Ashen Sword"]
    assert len(swords) == 1
    assert swords[0].trait_type == "Artefacts"


def test_lore_links_resolve_through_lores_document(monkeypatch):
    monkeypatch.setattr(config, "SCOURGE_OF_GHYRAN_PUBLICATION_ID", SCOURGE_PUBLICATION)
    traits = _by_name(battle_traits.parse_battle_trait_cat_xml(FACTION_XML, LORES_XML).traits)
    lore = traits["Lore of the Searing Flame"]
    assert lore.trait_type == "Spell lores"
    assert [ability.name for ability in lore.abilities] == ["Molten Ire", "Fiery Ward"]
    assert lore.abilities[0].casting_value == "7"
    assert lore.subfaction == "Scourge of Ghyran"


def test_unresolved_lore_links_keep_an_empty_trait():
    without_lores = _by_name(battle_traits.parse_battle_trait_cat_xml(FACTION_XML).traits)
    assert without_lores["Lore of the Searing Flame"].abilities == []
    with_lores = _by_name(battle_traits.parse_battle_trait_cat_xml(FACTION_XML, LORES_XML).traits)
    assert with_lores["Lore of Ash"].abilities == []
    assert with_lores["Lore of Ash"].subfaction is None


def test_empty_document():
    result = battle_traits.parse_battle_trait_cat_xml("")
    assert result.traits == []
    assert result.faction == "Imported"


def test_scourge_detection_is_off_without_a_publication_id(monkeypatch):
    monkeypatch.setattr(config, "SCOURGE_OF_GHYRAN_PUBLICATION_ID", None)
    traits = _by_name(battle_traits.parse_battle_trait_cat_xml(FACTION_XML, LORES_XML).traits)
    lore = traits["Lore of the Searing Flame"]
    assert [ability.name for ability in lore.abilities] == ["Molten Ire", "Fiery Ward"]
    assert lore.subfaction is None


def test_entries_without_id_are_deduplicated_by_name():
    entry = (
        '<selectionEntry name="Fiery Endurance" type="upgrade"><profiles>'
        '<profile name="Fiery Endurance" typeName="Ability (Passive)"><characteristics>'
        '<characteristic name="Effect">Heal 1.</characteristic>'
        "</characteristics></profile></profiles></selectionEntry>"
    )
    xml = catalogue(
        "<sharedSelectionEntryGroups>"
        f'<selectionEntryGroup id="g-heroic" name="Heroic Traits"><selectionEntries>{entry}</selectionEntries></selectionEntryGroup>'
        f'<selectionEntryGroup id="g-artefacts" name="Artefacts of Power"><selectionEntries>{entry}</selectionEntries></selectionEntryGroup>'
        "</sharedSelectionEntryGroups>"
    )
    traits = battle_traits.parse_battle_trait_cat_xml(xml).traits
    assert [(trait.name, trait.trait_type) for trait in traits] == [("Fiery Endurance", "Heroic traits")]
