"""Distribution statement renderer.

Writes an applied waterfall to an auditable workbook:

- Summary: distribution header, LP/GP totals and the reconciliation flag
- Tier Breakdown: one row per tier reached, with SUM totals
- Allocations: every allocation line, with SUM totals
- By Investor: investor-by-tier matrix with row and column totals

Line-level cells hold values; totals are formulas so a reviewer can see the
sheet add up inside Excel.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.worksheet.worksheet import Worksheet

from waterfall_domain.blocks import BlockContext, BlockExecutor, default_report_blocks
from waterfall_domain.schemas import Distribution, WaterfallResult, WaterfallSettings


PERCENT_FORMAT = "0.00%"


def money_format(quantum: Decimal) -> str:
    """Number format showing exactly as many decimals as the currency quantum."""
    places = max(0, -quantum.normalize().as_tuple().exponent)
    return "#,##0" + ("." + "0" * places if places else "")


class DistributionStatementRenderer:
    """Render one applied distribution as a four-sheet statement."""

    def __init__(
        self,
        result: WaterfallResult,
        distribution: Optional[Distribution] = None,
        settings: Optional[WaterfallSettings] = None,
    ):
        self.result = result
        self.distribution = distribution
        self.settings = settings or WaterfallSettings()
        self.money_format = money_format(self.settings.currency_quantum)

        # Fonts
        self.black_font = Font(color="000000")  # Values taken from the engine
        self.bold_font = Font(bold=True)
        self.title_font = Font(bold=True, size=14)
        self.header_font = Font(bold=True, color="FFFFFF")
        self.ok_font = Font(bold=True, color="006400")
        self.error_font = Font(bold=True, color="C00000")

        # Fills
        self.header_fill = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")
        self.gp_fill = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")

        # Borders
        self.thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )
        self.totals_border = Border(top=Side(style='medium'), bottom=Side(style='medium'))

        # Alignment
        self.center_align = Alignment(horizontal='center', vertical='center')

    def render(self, output_path: str) -> str:
        wb = self.build_workbook()
        wb.save(output_path)
        return output_path

    def build_workbook(self) -> Workbook:
        context = BlockContext()
        context.set("waterfall_result", self.result)
        BlockExecutor(default_report_blocks()).execute(context)

        wb = Workbook()
        wb.remove(wb.active)

        self._render_summary(wb.create_sheet("Summary"), context.get("distribution_summary"))
        self._render_frame(
            wb.create_sheet("Tier Breakdown"),
            context.get("tier_breakdown"),
            headers={
                "tier_number": "Tier",
                "tier_name": "Name",
                "tier_type": "Type",
                "prior_allocated": "Prior Allocated",
                "capacity_left": "Capacity Left",
                "tier_amount": "Tier Amount",
                "lp_pool": "LP Pool",
                "gp_pool": "GP Pool",
                "remaining_after": "Remaining After",
                "pct_of_distribution": "% of Distribution",
            },
            total_columns=["tier_amount", "lp_pool", "gp_pool"],
        )
        self._render_frame(
            wb.create_sheet("Allocations"),
            context.get("allocation_lines"),
            headers={
                "tier_number": "Tier",
                "investor_id": "Investor",
                "party": "Party",
                "ownership_percent": "Ownership %",
                "lp_amount": "LP Amount",
                "gp_amount": "GP Amount",
                "amount": "Amount",
            },
            total_columns=["lp_amount", "gp_amount", "amount"],
        )
        by_investor = context.get("allocations_by_investor")
        self._render_frame(
            wb.create_sheet("By Investor"),
            by_investor,
            headers=self._by_investor_headers(by_investor),
            total_columns=[c for c in by_investor.columns if c.startswith("tier_") or c == "total"],
        )
        return wb

    # ------------------------------------------------------------------ #
    # Sheets
    # ------------------------------------------------------------------ #

    def _render_summary(self, sheet: Worksheet, summary: pd.DataFrame) -> None:
        row = summary.iloc[0]

        sheet["A1"].value = "Distribution Statement"
        sheet["A1"].font = self.title_font

        fields = [
            ("Distribution", row["distribution_id"], None),
            ("Structure", row["structure_id"], None),
        ]
        if self.distribution is not None:
            fields += [
                ("Number", self.distribution.distribution_number, None),
                ("Date", self.distribution.distribution_date, "yyyy-mm-dd"),
                ("Currency", self.distribution.currency, None),
                ("Status", self.distribution.status, None),
            ]
        fields += [
            ("Total Amount", row["total_amount"], self.money_format),
            ("Tiers Reached", row["tiers_reached"], None),
            ("LP Total", row["lp_total"], self.money_format),
            ("GP Total", row["gp_total"], self.money_format),
            ("Allocated Total", row["allocated_total"], self.money_format),
            ("Investors", row["investor_count"], None),
            ("Difference", row["difference"], self.money_format),
        ]

        r = 3
        for label, value, number_format in fields:
            sheet[f"A{r}"].value = label
            sheet[f"A{r}"].font = self.bold_font
            cell = sheet[f"B{r}"]
            cell.value = self._cell_value(value)
            if number_format:
                cell.number_format = number_format
            r += 1

        sheet[f"A{r}"].value = "Reconciled"
        sheet[f"A{r}"].font = self.bold_font
        reconciled = bool(row["reconciled"])
        sheet[f"B{r}"].value = "Yes" if reconciled else "No"
        sheet[f"B{r}"].font = self.ok_font if reconciled else self.error_font

        sheet.column_dimensions["A"].width = 18
        sheet.column_dimensions["B"].width = 40

    def _render_frame(
        self,
        sheet: Worksheet,
        df: pd.DataFrame,
        headers: dict,
        total_columns: List[str],
    ) -> None:
        """Write a DataFrame as a header row, value rows and a SUM totals row."""
        columns = [c for c in headers if c in df.columns]

        for col_idx, column in enumerate(columns, start=1):
            cell = sheet.cell(row=1, column=col_idx, value=headers[column])
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.center_align
            cell.border = self.thin_border
            sheet.column_dimensions[self._col_letter(col_idx)].width = max(12, len(headers[column]) + 4)

        first_row = 2
        for offset, record in enumerate(df.to_dict("records")):
            r = first_row + offset
            is_gp = record.get("party") == "GP"
            for col_idx, column in enumerate(columns, start=1):
                cell = sheet.cell(row=r, column=col_idx, value=self._cell_value(record[column]))
                cell.font = self.black_font
                cell.border = self.thin_border
                self._apply_number_format(cell, column)
                if is_gp:
                    cell.fill = self.gp_fill
        last_row = first_row + len(df) - 1

        totals_row = last_row + 2 if len(df) else first_row + 1
        label = sheet.cell(row=totals_row, column=1, value="Totals")
        label.font = self.bold_font
        label.border = self.totals_border
        for col_idx, column in enumerate(columns, start=1):
            if column not in total_columns:
                continue
            letter = self._col_letter(col_idx)
            cell = sheet.cell(row=totals_row, column=col_idx)
            cell.value = f"=SUM({letter}{first_row}:{letter}{max(last_row, first_row)})"
            cell.font = self.bold_font
            cell.border = self.totals_border
            cell.number_format = self.money_format

        sheet.freeze_panes = "A2"

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _by_investor_headers(df: pd.DataFrame) -> dict:
        headers = {"investor_id": "Investor", "party": "Party"}
        for column in df.columns:
            if column.startswith("tier_"):
                headers[column] = f"Tier {column.split('_', 1)[1]}"
        headers["total"] = "Total"
        headers["pct_of_distribution"] = "% of Distribution"
        return headers

    def _apply_number_format(self, cell, column: str) -> None:
        if column == "pct_of_distribution":
            # Stored as 0-100; shown as a percentage
            if cell.value is not None:
                cell.value = cell.value / 100
            cell.number_format = PERCENT_FORMAT
        elif column == "ownership_percent":
            cell.number_format = "0.000000"
        elif column in ("tier_number",):
            cell.number_format = "0"
        elif isinstance(cell.value, (int, float)):
            cell.number_format = self.money_format

    @staticmethod
    def _cell_value(value):
        if value is None:
            return None
        if isinstance(value, float) and pd.isna(value):
            return None
        if isinstance(value, Decimal):
            return float(value)
        return value

    @staticmethod
    def _col_letter(idx: int) -> str:
        """Convert 1-based column index to Excel column letter."""
        letter = ""
        while idx > 0:
            idx, rem = divmod(idx - 1, 26)
            letter = chr(65 + rem) + letter
        return letter
