"""
Giderler ( Expenses ) model → AOA.

    operating   14 columns: group, account, item, then per year
                (Y2/Y3 growth %), amount, share of operating, share of net ciro
    service     11 columns: account, item, (students, unit, total) × 3
    dorm        same as service
    burs        10 columns: name, (students, avg %, total) × 3, then the
                two Y1 ratio lines
    summary     label, Y1, Y2, Y3
"""

from __future__ import annotations

from app.services.report.common import YEAR_KEYS, as_dict, as_list
from app.utils.numbers import number_or_null


def _dict_rows(rows) -> list[dict]:
    return [r for r in as_list(rows) if isinstance(r, dict)]


def _year_label(year_meta, key):
    return as_dict(as_dict(year_meta).get(key)).get("labelLong") or key.upper()


def _yoy_pct(current, previous):
    c, p = number_or_null(current), number_or_null(previous)
    if c is None or p is None or p <= 0:
        return None
    return (c / p - 1) * 100


def _ciro_pct(amount, ciro):
    a, c = number_or_null(amount), number_or_null(ciro)
    if a is None or c is None or c <= 0:
        return None
    return a / c * 100


def _operating_block(section, year_meta, code, net_ciro) -> list[list]:
    total_h = f"Toplam ({code})"
    op_h = "İşletme Giderleri Toplamı içindeki %"
    ciro_h = "Toplam Ciro içindeki %"
    aoa = [
        [section.get("title") or "GİDERLER (İŞLETME)"],
        ["Grup", "Hesap", "Gider Kalemi",
         _year_label(year_meta, "y1"), "", "",
         _year_label(year_meta, "y2"), "", "", "",
         _year_label(year_meta, "y3"), "", "", ""],
        ["", "", "", total_h, op_h, ciro_h,
         "Tahmini artış %", total_h, op_h, ciro_h,
         "Tahmini artış %", total_h, op_h, ciro_h],
    ]
    for r in _dict_rows(section.get("rows")):
        y1, y2, y3 = (as_dict(r.get(y)) for y in YEAR_KEYS)
        aoa.append([
            r.get("groupLabel") or "", r.get("code"), r.get("label") or "",
            y1.get("amount"), y1.get("opPct"), y1.get("ciroPct"),
            y2.get("yoyPct"), y2.get("amount"), y2.get("opPct"), y2.get("ciroPct"),
            y3.get("yoyPct"), y3.get("amount"), y3.get("opPct"), y3.get("ciroPct"),
        ])

    totals = as_dict(section.get("totals"))
    aoa.append([
        "", "", "TOPLAM",
        totals.get("y1"), 100, _ciro_pct(totals.get("y1"), net_ciro.get("y1")),
        _yoy_pct(totals.get("y2"), totals.get("y1")), totals.get("y2"), 100,
        _ciro_pct(totals.get("y2"), net_ciro.get("y2")),
        _yoy_pct(totals.get("y3"), totals.get("y2")), totals.get("y3"), 100,
        _ciro_pct(totals.get("y3"), net_ciro.get("y3")),
    ])
    aoa.append([])
    return aoa


def _per_student_block(section, default_title, year_meta, code) -> list[list]:
    aoa = [
        [section.get("title") or default_title],
        ["Hesap", "Gider Kalemi",
         _year_label(year_meta, "y1"), "", "",
         _year_label(year_meta, "y2"), "", "",
         _year_label(year_meta, "y3"), "", ""],
        ["", ""] + ["Öğrenci", f"Birim ({code})", f"Toplam ({code})"] * 3,
    ]
    for r in _dict_rows(section.get("rows")):
        line = [r.get("code"), r.get("label") or ""]
        for y in YEAR_KEYS:
            cell = as_dict(r.get(y))
            line += [cell.get("studentCount"), cell.get("unitCost"), cell.get("total")]
        aoa.append(line)

    totals = as_dict(section.get("totals"))
    aoa.append(["", "TOPLAM", "", "", totals.get("y1"), "", "", totals.get("y2"), "", "", totals.get("y3")])
    aoa.append([])
    return aoa


def _burs_block(section, year_meta, code) -> list[list]:
    aoa = [
        [section.get("title") or "BURS VE İNDİRİMLER"],
        ["Burs / İndirim",
         _year_label(year_meta, "y1"), "", "",
         _year_label(year_meta, "y2"), "", "",
         _year_label(year_meta, "y3"), "", ""],
        [""] + ["Burslu Öğrenci", "Ort. %", f"Toplam ({code})"] * 3,
    ]
    for r in _dict_rows(section.get("rows")):
        line = [r.get("name") or ""]
        for y in YEAR_KEYS:
            cell = as_dict(r.get(y))
            line += [cell.get("studentCount"), cell.get("avgPct"), cell.get("total")]
        aoa.append(line)

    totals = as_dict(section.get("totals"))
    total_line = ["TOPLAM"]
    for y in YEAR_KEYS:
        cell = as_dict(totals.get(y))
        total_line += [cell.get("studentCount"), "", cell.get("total")]
    aoa.append(total_line)

    ratios = as_dict(section.get("ratios"))
    pad = [""] * 8
    aoa.append(["Burs/İndirimli Öğrenci Oranı (Y1)", ratios.get("ratioStudentsY1")] + pad)
    aoa.append(["Burs/İndirimlerin Öğrenci Ücret Gelirleri İçindeki % (Y1)", ratios.get("ratioAmountY1")] + pad)
    aoa.append([])
    return aoa


def build_giderler_aoa(model=None) -> list[list]:
    if not isinstance(model, dict):
        return [["Giderler model empty"]]

    code = model.get("currencyCode") or "USD"
    year_meta = model.get("yearMeta")
    sections = as_dict(model.get("sections"))
    net_ciro = as_dict(as_dict(model.get("totals")).get("netCiro"))

    aoa: list[list] = [
        [model.get("sheetTitle") or "Giderler ( Expenses )"],
        ["Para Birimi", code],
        [],
    ]
    aoa += _operating_block(as_dict(sections.get("operating")), year_meta, code, net_ciro)
    aoa += _per_student_block(as_dict(sections.get("service")), "GİDERLER (ÖĞRENİM DIŞI)", year_meta, code)
    aoa += _per_student_block(as_dict(sections.get("dorm")), "GİDERLER (YURT/KONAKLAMA)", year_meta, code)
    aoa += _burs_block(as_dict(sections.get("burs")), year_meta, code)

    summary = as_dict(sections.get("summary"))
    aoa.append([summary.get("title") or "ÖZET"])
    aoa.append(["", "Y1", "Y2", "Y3"])
    for r in _dict_rows(summary.get("rows")):
        aoa.append([r.get("label") or "", r.get("y1"), r.get("y2"), r.get("y3")])
    aoa.append([])
    return aoa
