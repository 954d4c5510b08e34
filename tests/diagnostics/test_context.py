from fieldjobs.diagnostics.context import build_context
from fieldjobs.diagnostics.knowledge_base import WorkflowCategory
from fieldjobs.ledger.models import VehicleInfo


def test_full_context_for_known_engine():
    context = build_context(
        VehicleInfo(make="Audi", model="A4", year=2006, vin="WAUZZZ8BX5A123456"),
        codes=["P0302", "P9999"],
        symptoms=["rough idle"],
    )
    assert context.vehicle.engine_family == "BPY"
    assert context.vehicle.engine_designation == "2.0T FSI"
    assert "PCV failure" in context.known_issues
    assert context.diagnostic_priority[0] == "Check cam follower condition"
    assert [item.code for item in context.code_explanations] == ["P0302", "P9999"]
    assert context.workflow_category == WorkflowCategory.MECHANICAL
    assert context.symptom_workflow[0] == "Verify symptoms"


def test_unknown_engine_has_no_knowledge():
    context = build_context(VehicleInfo(vin="JHMZZZ3BX5A123456"))
    assert context.vehicle.engine_family == "unknown"
    assert context.vehicle.engine_designation is None
    assert context.known_issues == ()


def test_invalid_vin_is_dropped():
    context = build_context(VehicleInfo(make="VW", vin="NOT-A-VIN"), codes=["P0171"])
    assert context.vehicle.vin is None
    assert context.vehicle.engine_family is None
    assert context.vehicle.make == "VW"
    assert len(context.code_explanations) == 1


def test_codes_are_deduplicated_and_blank_codes_skipped():
    context = build_context(codes=["p0300", " P0300", "", "   ", "P0420"])
    assert [item.code for item in context.code_explanations] == ["P0300", "P0420"]


def test_no_symptoms_means_no_workflow():
    context = build_context(codes=["P0300"])
    assert context.workflow_category is None
    assert context.symptom_workflow == ()
    assert context.to_dict()["workflow_category"] is None


def test_render_lists_sections():
    context = build_context(
        VehicleInfo(make="Audi", model="A4", year=2006, vin="WAUZZZ8BX5A123456"),
        codes=["P0302"],
        symptoms=["misfire code on cold start"],
    )
    text = context.render()
    assert "VEHICLE: 2006 Audi A4" in text
    assert "ENGINE: BPY (2.0T FSI)" in text
    assert "• P0302 = Check coil" in text
    assert "SUGGESTED PATH: Check for DTCs → Verify power and ground" in text


def test_empty_context_renders_empty():
    assert build_context().render() == ""
