from __future__ import annotations

from collections import Counter
from datetime import date, datetime
from typing import Union

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from mpos.domain.models import DailyReport, PaymentMethod, Sale, TopProduct
from mpos.services.sales_service import SalesLedger

DateLike = Union[date, datetime, str]

TOP_PRODUCTS_LIMIT = 5
CURRENCY = "€"


def day_key(value: DateLike) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).split("T")[0].split(" ")[0]


def money(amount: float) -> str:
    return f"{CURRENCY}{float(amount):.2f}"


class ReportingService:
    def __init__(self, ledger: SalesLedger):
        self.ledger = ledger

    async def daily_report(self, day: DateLike) -> DailyReport:
        key = day_key(day)
        sales = [s for s in await self.ledger.list_sales() if day_key(s.date) == key]

        payment_methods = {m.value: 0.0 for m in PaymentMethod}
        for s in sales:
            payment_methods[s.payment_method.value] += float(s.total_amount)

        # dicts keep first-seen order, and sorted() is stable, so ties stay in sale order
        qty: Counter[str] = Counter()
        revenue: dict[str, float] = {}
        for s in sales:
            for it in s.items:
                qty[it.product_name] += int(it.quantity)
                revenue[it.product_name] = revenue.get(it.product_name, 0.0) + float(it.total_price)
        ranked = sorted(revenue, key=lambda name: qty[name], reverse=True)[:TOP_PRODUCTS_LIMIT]

        return DailyReport(
            date=key,
            sales_count=len(sales),
            total_amount=sum(float(s.total_amount) for s in sales),
            total_items=sum(int(it.quantity) for s in sales for it in s.items),
            sales=tuple(sales),
            payment_methods=payment_methods,
            top_products=tuple(TopProduct(name=n, quantity=qty[n], revenue=revenue[n]) for n in ranked),
        )

    async def export_daily_report_as_text(self, day: DateLike) -> str:
        """CSV-style text export. Column order is consumed by existing tools; keep it.

        "Cantidad" in the payment summary is the number of sales paid with that
        method. Exports from earlier releases wrote a 0/1 flag there, so readers
        of that column see counts above 1 on busy days.
        """
        report = await self.daily_report(day)
        counts = Counter(s.payment_method.value for s in report.sales)

        out = ["Reporte de Ventas Diarias"]
        out.append(f"Fecha,{report.date}")
        out.append(f"Total de Ventas,{money(report.total_amount)}")
        out.append(f"Número de Ventas,{report.sales_count}")
        out.append(f"Total de Productos,{report.total_items}")
        out.append("")
        out.append("Detalle de Ventas")
        out.append("Timestamp,Total,Método de Pago,Productos")
        for s in report.sales:
            products = "; ".join(f"{it.product_name} x{it.quantity}" for it in s.items)
            out.append(f'{s.date},{money(s.total_amount)},{s.payment_method.value},"{products}"')
        out.append("")
        out.append("Resumen por Método de Pago")
        out.append("Método,Cantidad,Total")
        for m in PaymentMethod:
            out.append(f"{m.value},{counts[m.value]},{money(report.payment_methods[m.value])}")
        return "\n".join(out) + "\n"

    async def export_daily_report_excel(self, path: str, day: DateLike) -> None:
        report = await self.daily_report(day)
        wb = Workbook()

        def fmt_money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, end_row: int, end_col: int):
            ref = f"A{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(name="TableStyleMedium9", showRowStripes=True, showColumnStripes=False)
            ws.add_table(tab)

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Daily sales"
        ws["A1"].font = Font(bold=True, size=14)
        ws["A3"] = "Date"
        ws["B3"] = report.date

        rows = [
            ("Sales count", report.sales_count, False),
            ("Revenue", float(report.total_amount), True),
            ("Items sold", report.total_items, False),
        ]
        for i, (label, val, is_money) in enumerate(rows):
            r = 5 + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if is_money:
                fmt_money(ws[f"B{r}"])

        ws["A9"] = "Top products"
        ws["A9"].font = Font(bold=True)
        ws.append(["Product", "Qty", "Revenue"])
        bold_row(ws, 10)
        for tp in report.top_products:
            ws.append([tp.name, int(tp.quantity), float(tp.revenue)])
            fmt_money(ws[f"C{ws.max_row}"])
        set_widths(ws, {"A": 28, "B": 16, "C": 16})

        # -------- 2) Sales Detail --------
        ws2 = wb.create_sheet("Sales Detail")
        ws2.append(["Sale ID", "Datetime", "Payment", "Product", "Variant", "Qty", "Unit Price", "Line Total"])
        bold_row(ws2, 1)
        for s in report.sales:
            for it in s.items:
                ws2.append([
                    s.id, s.date, s.payment_method.value,
                    it.product_name, it.variant or "",
                    int(it.quantity), float(it.unit_price), float(it.total_price),
                ])
                fmt_money(ws2[f"G{ws2.max_row}"])
                fmt_money(ws2[f"H{ws2.max_row}"])
        ws2.freeze_panes = "A2"
        set_widths(ws2, {"A": 34, "B": 26, "C": 12, "D": 30, "E": 12, "F": 6, "G": 14, "H": 14})
        if ws2.max_row >= 2:
            add_table(ws2, "SalesDetail", 1, ws2.max_row, 8)

        # -------- 3) Payment Methods --------
        ws3 = wb.create_sheet("Payment Methods")
        ws3.append(["Method", "Sales", "Total"])
        bold_row(ws3, 1)
        counts = Counter(s.payment_method.value for s in report.sales)
        for m in PaymentMethod:
            ws3.append([m.value, counts[m.value], float(report.payment_methods[m.value])])
            fmt_money(ws3[f"C{ws3.max_row}"])
        set_widths(ws3, {"A": 14, "B": 10, "C": 14})

        wb.save(path)

    @staticmethod
    def render_receipt_text(sale: Sale) -> str:
        when = datetime.fromisoformat(sale.date.replace("Z", "+00:00")).strftime("%d/%m/%Y %H:%M:%S")
        method = "Efectivo" if sale.payment_method == PaymentMethod.CASH else "Tarjeta"

        out = ["=== RECIBO ===", ""]
        out.append(f"Fecha: {when}")
        out.append(f"ID Venta: {sale.id}")
        out.append(f"Método de pago: {method}")
        out.append("")
        out.append("PRODUCTOS:")
        out.append("------------------------")
        for it in sale.items:
            name = f"{it.product_name} ({it.variant})" if it.variant else it.product_name
            out.append(name)
            out.append(f"  Cantidad: {it.quantity}")
            out.append(f"  Precio unitario: {money(it.unit_price)}")
            out.append(f"  Subtotal: {money(it.total_price)}")
            out.append("")
        out.append("------------------------")
        out.append(f"TOTAL: {money(sale.total_amount)}")
        out.append("========================")
        out.append("")
        out.append("¡Gracias por tu compra!")
        return "\n".join(out)
