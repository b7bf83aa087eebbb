"""Integration tests for end-to-end CLI workflows."""

import json
import pytest
from buwis.cli.main import cli


@pytest.fixture
def invoke(cli_runner, temp_db):
    """Run the CLI against the temporary database."""

    def run(*args):
        return cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])

    return run


@pytest.fixture
def invoice_files(tmp_path, sample_invoices):
    """Write the sample invoices as one list file and one single-object file."""
    january = tmp_path / "january.json"
    january.write_text(json.dumps([sample_invoices[0].to_dict()]))
    march = tmp_path / "march.json"
    march.write_text(sample_invoices[1].to_json())
    return [str(january), str(march)]


def create_session(invoke, *extra):
    result = invoke("session", "create", "--user", "juan", "--quarter", "Q1", "--year", "2025", *extra)
    assert result.exit_code == 0, result.output
    # Output is "Created session <id>"
    return result.output.strip().split()[-1]


def test_full_workflow(invoke, invoice_files, tmp_path):
    """Test register -> create session -> import -> summary -> regime -> export."""
    # Step 1: Register the taxpayer
    result = invoke(
        "taxpayer",
        "register",
        "--name",
        "Juan Dela Cruz",
        "--tin",
        "123456789000",
        "--address",
        "Makati City",
        "--business-name",
        "JDC Consulting",
        "--pt-rate",
        "3%",
    )
    assert result.exit_code == 0, result.output
    assert "Saved taxpayer 'JDC Consulting' (TIN: 123456789000)" in result.output

    # Step 2: Create a session using the profile
    session_id = create_session(invoke, "--tin", "123456789000")
    assert session_id.startswith("buwisfriend-juan-")

    # Step 3: Import invoices
    result = invoke("invoice", "import", session_id, *invoice_files)
    assert result.exit_code == 0, result.output
    assert "Imported: 2 invoice(s)" in result.output
    assert "Net receivable: PHP 18,400.00" in result.output

    # Step 4: View the summary
    result = invoke("session", "show", session_id)
    assert result.exit_code == 0, result.output
    assert "JDC Consulting (TIN 123456789000) - 2025 Q1" in result.output
    assert "PHP 20,000.00" in result.output
    assert "PHP 18,400.00" in result.output

    result = invoke("session", "show", session_id, "--json")
    summary = json.loads(result.stdout)
    assert summary["invoice_numbers"] == ["INV-001", "INV-002"]
    assert summary["withholding_tax"] == {"amount": "1000.00", "currency": "PHP"}

    # Step 5: Switch the income tax regime
    result = invoke("session", "regime", session_id, "flat")
    assert result.exit_code == 0, result.output
    assert "Income tax regime set to FLAT; tax due PHP 0.00" in result.output

    # Step 6: Export and re-import
    export_path = tmp_path / "session.json"
    result = invoke("session", "export", session_id, "-o", str(export_path))
    assert result.exit_code == 0, result.output
    exported = json.loads(export_path.read_text())
    assert exported["id"] == session_id
    assert exported["metadata"]["tax_settings"]["income_tax_type"] == "FLAT"

    result = invoke("session", "import", str(export_path))
    assert result.exit_code == 1
    assert "already exists" in result.output

    result = invoke("session", "import", str(export_path), "--overwrite")
    assert result.exit_code == 0, result.output
    assert "(2 invoice(s))" in result.output


def test_invoice_management(invoke, invoice_files):
    """Test listing, removing and clearing invoices."""
    session_id = create_session(invoke)
    invoke("invoice", "import", session_id, *invoice_files)

    result = invoke("invoice", "list", session_id)
    assert result.exit_code == 0
    assert "INV-001" in result.output
    assert "INV-002" in result.output

    result = invoke("invoice", "remove", session_id, "inv-001")
    assert result.exit_code == 0, result.output
    assert "Removed invoice INV-001 (1 remaining)" in result.output

    result = invoke("invoice", "remove", session_id, "INV-001")
    assert result.exit_code == 1
    assert "not found" in result.output

    result = invoke("invoice", "clear", session_id, "--yes")
    assert result.exit_code == 0
    result = invoke("invoice", "list", session_id)
    assert "No invoices found." in result.output


def test_import_rejections(invoke, tmp_path, make_invoice, invoice_files):
    """Test that rejected imports report the error and store nothing."""
    session_id = create_session(invoke)

    april = tmp_path / "april.json"
    april.write_text(make_invoice("INV-APR", timestamp="2025-04-02T00:00:00Z").to_json())
    result = invoke("invoice", "import", session_id, invoice_files[0], str(april))
    assert result.exit_code == 1
    assert "not fileable" in result.output

    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    result = invoke("invoice", "import", session_id, str(broken))
    assert result.exit_code == 1
    assert "not valid JSON" in result.output

    result = invoke("invoice", "list", session_id)
    assert "No invoices found." in result.output


def test_session_listing_and_period(invoke):
    """Test listing sessions, moving and deleting one."""
    result = invoke("session", "list")
    assert "No sessions found." in result.output

    session_id = create_session(invoke)
    result = invoke("session", "period", session_id, "--quarter", "Q3")
    assert result.exit_code == 0, result.output
    assert "is now 2025 Q3" in result.output

    result = invoke("session", "list", "--user", "juan")
    assert session_id in result.output
    assert "2025 Q3" in result.output

    result = invoke("session", "delete", session_id, "--yes")
    assert result.exit_code == 0
    result = invoke("session", "show", session_id)
    assert result.exit_code == 1
    assert "not found" in result.output


def test_create_session_with_unknown_taxpayer(invoke):
    """Test that an unknown TIN is reported."""
    result = invoke("session", "create", "--user", "juan", "--quarter", "Q1", "--tin", "999")
    assert result.exit_code == 1
    assert "Taxpayer with TIN '999' not found" in result.output


def test_taxpayer_commands(invoke, tmp_path, make_invoice):
    """Test listing, showing, importing and deleting profiles."""
    result = invoke("taxpayer", "list")
    assert "No taxpayer profiles found." in result.output

    invoice = make_invoice("V-1")
    invoice.update_issuer(name="Maria Santos", tin="987654321000", business_name="MS Trading")
    invoice_path = tmp_path / "invoice.json"
    invoice_path.write_text(invoice.to_json())

    result = invoke("taxpayer", "import", str(invoice_path), "--from-invoice")
    assert result.exit_code == 0, result.output
    assert "Saved taxpayer 'MS Trading' (TIN: 987654321000)" in result.output

    result = invoke("taxpayer", "show", "987654321000")
    profile = json.loads(result.stdout)
    assert profile["vat_type"] == "Non-VAT"
    assert profile["percentage_tax_rate"] == "0.03"

    result = invoke("taxpayer", "list")
    assert "MS Trading" in result.output

    result = invoke("taxpayer", "delete", "987654321000", "--yes")
    assert result.exit_code == 0
    result = invoke("taxpayer", "show", "987654321000")
    assert result.exit_code == 1


def test_register_rejects_bad_rate(invoke):
    """Test that an unparsable rate is reported."""
    result = invoke(
        "taxpayer",
        "register",
        "--name",
        "Juan",
        "--tin",
        "1",
        "--address",
        "Makati",
        "--business-name",
        "JDC",
        "--vat-rate",
        "twelve",
    )
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_invoice_breakdown_and_template(invoke, tmp_path, make_invoice):
    """Test the stand-alone breakdown and template commands."""
    path = tmp_path / "invoice.json"
    path.write_text(make_invoice("INV-001").to_json())

    result = invoke("invoice", "breakdown", str(path))
    assert result.exit_code == 0, result.output
    assert "Percentage tax (3%)" in result.output
    assert "Withholding tax (5%)" in result.output
    assert "PHP 9,200.00" in result.output

    result = invoke("invoice", "breakdown", str(path), "--json")
    breakdown = json.loads(result.stdout)
    assert breakdown["percentage_tax"]["total"]["amount"] == "300.00"

    result = invoke("invoice", "template", "--vat-type", "VAT")
    template = json.loads(result.stdout)
    assert template["metadata"]["type"] == "VAT"
    assert template["order"]["settings"]["vat_rate"] == "0.12"


def test_tax_calculators(invoke):
    """Test the income tax and deadline calculators."""
    result = invoke("tax", "income", "PHP 500,000")
    assert result.exit_code == 0, result.output
    assert "Income tax due (GRADUATED): PHP 42,500.00" in result.output
    assert "Net income after tax: PHP 457,500.00" in result.output

    result = invoke("tax", "income", "500000", "--regime", "FLAT")
    assert "Income tax due (FLAT): PHP 20,000.00" in result.output

    result = invoke("tax", "income", "abc")
    assert result.exit_code == 1

    result = invoke("tax", "deadlines", "--quarter", "Q4", "--year", "2025")
    assert result.exit_code == 0, result.output
    assert "2026-01-25" in result.output
    assert "Annual income tax:" in result.output
    assert "2026-04-15" in result.output
    assert "2026-01-15" in result.output
    assert "2026-01-31" in result.output
