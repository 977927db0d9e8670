"""
Giderler ( Expenses ) sheet model.

Four sections plus a summary:

    operating   İşletme giderleri; the five salary rows are fed by the HR
                salary mapping, other rows grow Y1 by the inflation factor
    service     non-education services (student counts from the matching
                Gelirler rows × unit cost)
    dorm        dormitory / summer school, same shape as service
    burs        one row per known scholarship / discount
"""

from __future__ import annotations

import logging

from app.services.report.common import (
    YEAR_KEYS,
    CurrencyContext,
    as_dict,
    as_list,
    build_year_meta,
)
from app.services.report.discounts import (
    discount_lookup,
    discount_pct,
    discount_rate,
    discount_student_count,
    normalize_name,
)
from app.services.report.gelirler_model import IncomeContext, manual_student_count
from app.services.report.hr_model import SALARY_BUCKETS, compute_ik_years
from app.utils.numbers import pct_to_display

logger = logging.getLogger(__name__)

SHEET_TITLE = "Giderler ( Expenses )"

IK_AUTO_KEYS = frozenset(SALARY_BUCKETS)

# (key, account code, label)
OPERATING_ITEMS: tuple[tuple[str, int, str], ...] = (
    ("ulkeTemsilciligi", 632, "Ülke Temsilciliği Giderleri (Temsilcilik Per. Gid. HARİÇ)"),
    ("genelYonetim", 632,
     "Genel Yönetim Giderleri (Ofis Giderleri, Kırtasiye, Aidatlar,Sosyal Yardımlar, Araç Kiralama, Sigorta vb.)"),
    ("kira", 622, "İşletme Giderleri (Kira)"),
    ("emsalKira", 622,
     "İşletme Giderleri (Emsal Kira, Bina Tahsis veya Vakıf'a ait ise Emsal Kira Bedeli Yazılacak)"),
    ("enerjiKantin", 622, "İşletme Giderleri (Elektrik, Su, Isıtma, Soğutma, Veri/Ses İletişim vb. Kantin)"),
    ("turkPersonelMaas", 622,
     "Yurt dışı TÜRK Personel Maaş Giderleri (Müdür, Müdür Yardımcısı,Yönetici, Eğitimci, Öğretmen, Belletmen vb.)"),
    ("turkDestekPersonelMaas", 622,
     "Yurt dışı TÜRK DESTEK Personel Maaş Giderleri (Eğitim faaliyetinde bulunmayan diğer çalışanlar. "
     "Ülke Temsilcisi, Temsilcilik destek vb.)"),
    ("yerelPersonelMaas", 622,
     "Yurt dışı YEREL Personel Maaş Giderleri (Yönetici, Eğitimci, Öğretmen, Belletmen vb.)"),
    ("yerelDestekPersonelMaas", 622,
     "Yurt dışı YEREL DESTEK ve Ülke Temsilciği DESTEK Personel Maaş Giderleri "
     "(Eğitim faaliyetinde bulunmayan diğer çalışanlar)"),
    ("internationalPersonelMaas", 622,
     "Yurt dışı INTERNATIONAL Personel Maaş Giderleri (Yönetici, Eğitimci, Öğretmen, Belletmen vb.)"),
    ("disaridanHizmet", 632,
     "Dışarıdan Sağlanan Mal ve Hizmet Alımları (Güvenlik,Temizlik,Avukatlık, Danışmanlık, "
     "İş Sağlığı ve Güvenliği, Mali Müşavir vb.)"),
    ("egitimAracGerec", 622,
     "Eğitim Araç ve Gereçleri (Okul ve Sınıflar için Kırtasiye Malzemeleri, Kitaplar, vb.) - "
     "(Öğrencilere dönem başı verilen)"),
    ("finansalGiderler", 632,
     "Finansal Giderler (Prim ödemeleri, Komisyon ve Kredi Giderleri, Teminat Mektupları)"),
    ("egitimAmacliHizmet", 622,
     "Eğitim Amaçlı Hizmet Alımları (İzinler ve lisanslama, Cambridge Lisanslamaları vb.)"),
    ("temsilAgirlama", 632,
     "Temsil ve Ağırlama - Kampüs bazında (Öğlen Yemeği Giderleri Hariç) mutfak giderleri vs.)"),
    ("ulkeIciUlasim", 622, "Ülke İçi Ulaşım ve Konaklama / Uçak Bileti Dahil / PERSONEL ULAŞIM"),
    ("ulkeDisiUlasim", 632,
     "Ülke Dışı Ulaşım ve Konaklama / Uçak Bileti Dahil / (TMV Merkez Misafir Ağırlama, Türk Personel)"),
    ("vergilerResmiIslemler", 632,
     "Vergiler Resmi İşlemler (Mahkeme,Dava ve İcra, Resmi İzinler,Tescil ve Kuruluş İşlemleri, Noter vb.)"),
    ("vergiler", 632, "Vergiler (Kira Stopaj dahil)"),
    ("demirbasYatirim", 622,
     "Demirbaş, Arsa, Bina, Taşıt ve Diğer Yatırım Alımları (Lisanslama, Yazılım ve program, "
     "Telif hakları vb. dahil)"),
    ("rutinBakim", 622,
     "Rutin Bakım, Onarım Giderleri (Boya, Tamirat, Tadilat, Makine Teçhizat, Araç, Ofis Malzeme Tamiri vb.)"),
    ("pazarlamaOrganizasyon", 631, "Pazarlama, Tanıtım Organizasyon, Etkinlikler (Öğrenci Faaliyetleri Dahil)"),
    ("reklamTanitim", 631, "Reklam, Tanıtım, Basım, İlan"),
    ("tahsilEdilemeyenGelirler", 622, "Tahsil Edilemeyen Gelirler"),
)

# Group label shown on the first row of each run; None for ungrouped runs
OPERATING_GROUPS: tuple[tuple[str | None, tuple[str, ...]], ...] = (
    (None, ("ulkeTemsilciligi", "genelYonetim")),
    ("Eğitim Hizmetleri Maliyetleri", (
        "kira", "emsalKira", "enerjiKantin",
        "turkPersonelMaas", "turkDestekPersonelMaas", "yerelPersonelMaas",
        "yerelDestekPersonelMaas", "internationalPersonelMaas",
        "disaridanHizmet", "egitimAracGerec", "finansalGiderler", "egitimAmacliHizmet",
    )),
    (None, ("temsilAgirlama",)),
    (None, ("ulkeIciUlasim",)),
    (None, ("ulkeDisiUlasim",)),
    ("Vergiler", ("vergilerResmiIslemler", "vergiler")),
    (None, ("demirbasYatirim", "rutinBakim")),
    ("Pazarlama, Tanıtım", ("pazarlamaOrganizasyon", "reklamTanitim")),
    (None, ("tahsilEdilemeyenGelirler",)),
)

# (key, account code, label, matching Gelirler row key)
SERVICE_ITEMS: tuple[tuple[str, int, str, str], ...] = (
    ("yemek", 622,
     "Yemek (Öğrenci ve Personel öğlen yemeği için yapılan harcamalar "
     "(Enerji, gıda,yakıt,elektrik,gaz vs. ve org. gideri))", "yemek"),
    ("uniforma", 621, "Üniforma (Öğrenci Üniforma maliyeti (Liste fiyatı değil, maliyet fiyatı))", "uniforma"),
    ("kitapKirtasiye", 621,
     "Kitap-Kırtasiye (Öğrencilere dönem başı verdiğimiz materyallerin maliyeti)", "kitap"),
    ("ulasimServis", 622, "Ulaşım (Okul Servisi) Öğrencilerimiz için kullanılan servis maliyeti", "ulasim"),
)

DORM_ITEMS: tuple[tuple[str, int, str, str], ...] = (
    ("yurtGiderleri", 622,
     "Yurt Giderleri (Kampüs giderleri içinde gösterilmmeyecek; yurt için yapılan giderler)", "yurt"),
    ("digerYurt", 622, "Diğer (Yaz Okulu Giderleri vs)", "yazOkulu"),
)

BURS_NAMES: tuple[str, ...] = (
    "MAGİS BAŞARI BURSU",
    "MAARİF YETENEK BURSU",
    "İHTİYAÇ BURSU",
    "OKUL BAŞARI BURSU",
    "TAM EĞİTİM BURSU",
    "BARINMA BURSU",
    "TÜRKÇE BAŞARI BURSU",
    "VAKFIN ULUSLARARASI YÜKÜMLÜLÜKLERİNDEN KAYNAKLI İNDİRİM",
    "VAKIF ÇALIŞANI İNDİRİMİ",
    "KARDEŞ İNDİRİMİ",
    "ERKEN KAYIT İNDİRİMİ",
    "PEŞİN ÖDEME İNDİRİMİ",
    "KADEME GEÇİŞ İNDİRİMİ",
    "TEMSİL İNDİRİMİ",
    "KURUM İNDİRİMİ",
    "İSTİSNAİ İNDİRİM",
    "YEREL MEVZUATIN ŞART KOŞTUĞU İNDİRİM",
)


def yoy(current, previous):
    return current / previous - 1 if previous > 0 else None


def share(amount, total):
    return amount / total if total > 0 else None


class ExpenseCalculator:
    """Operating amounts per item and year, in report currency."""

    def __init__(self, giderler, salary_by_year, factors, money):
        self.items = as_dict(as_dict(as_dict(giderler).get("isletme")).get("items"))
        self.salary_by_year = salary_by_year
        self.factors = factors
        self.money = money

    def salary_amount(self, key, year_key):
        """HR salary cost; an entered operating amount above the HR Y1 cost is kept as an extra."""
        entered = self.money(self.items.get(key))
        hr_y1 = self.salary_by_year["y1"][key]
        extra_y1 = max(0, entered - hr_y1) if hr_y1 > 0 else 0
        base = hr_y1 if hr_y1 > 0 else entered
        factor = self.factors[year_key]

        from_hr = self.salary_by_year[year_key][key]
        base_value = from_hr if from_hr > 0 else base * factor
        return base_value + extra_y1 * factor

    def amount(self, key, year_key):
        if key in IK_AUTO_KEYS:
            return self.salary_amount(key, year_key)
        return self.money(self.items.get(key)) * self.factors[year_key]


def _per_student_rows(items, section, giderler, income_rows, ctx):
    src = as_dict(as_dict(as_dict(giderler).get(section)).get("items"))
    by_income_key = {str(r.get("key")): r for r in income_rows}
    rows, totals = [], {y: 0 for y in YEAR_KEYS}
    for key, code, label, income_key in items:
        unit_y1 = ctx.money(as_dict(src.get(key)).get("unitCost"))
        row = {"key": key, "code": code, "label": label}
        for y in YEAR_KEYS:
            count = manual_student_count(by_income_key.get(income_key), y)
            unit = unit_y1 * ctx.factors[y]
            row[y] = {"studentCount": count, "unitCost": unit, "total": count * unit}
            totals[y] += count * unit
        rows.append(row)
    return rows, totals


def build_giderler_model(scenario=None, inputs=None, report=None, program_type=None,
                         currency_meta=None, report_currency="usd") -> dict:
    scenario = as_dict(scenario)
    inputs = as_dict(inputs)
    currency = CurrencyContext(scenario, currency_meta, report_currency)
    code = currency.currency_code
    year_meta = build_year_meta(scenario.get("academic_year"))

    ctx = IncomeContext(inputs, scenario, program_type or scenario.get("program_type"), currency)
    income = {y: ctx.year(y) for y in YEAR_KEYS}
    net_ciro = {y: max(0, income[y]["activityGross"] - income[y]["totalDiscounts"]) for y in YEAR_KEYS}

    ik_years = compute_ik_years(inputs, currency)["years"]
    salary_by_year = {y: ik_years[y]["salaryExpenseMapping"] for y in YEAR_KEYS}
    giderler = as_dict(inputs.get("giderler"))
    calc = ExpenseCalculator(giderler, salary_by_year, ctx.factors, ctx.money)

    operating_totals = {
        y: sum(calc.amount(key, y) for key, _, _ in OPERATING_ITEMS) for y in YEAR_KEYS
    }
    items_by_key = {key: (code_, label) for key, code_, label in OPERATING_ITEMS}
    operating_rows = []
    for group_label, keys in OPERATING_GROUPS:
        for idx, key in enumerate(keys):
            account, label = items_by_key[key]
            amounts = {y: calc.amount(key, y) for y in YEAR_KEYS}
            row = {
                "key": key,
                "groupLabel": group_label if group_label and idx == 0 else "",
                "code": account,
                "label": label,
            }
            for i, y in enumerate(YEAR_KEYS):
                cell = {
                    "amount": amounts[y],
                    "opPct": pct_to_display(share(amounts[y], operating_totals[y])),
                    "ciroPct": pct_to_display(share(amounts[y], net_ciro[y])),
                }
                if i > 0:
                    cell["yoyPct"] = pct_to_display(yoy(amounts[y], amounts[YEAR_KEYS[i - 1]]))
                row[y] = cell
            operating_rows.append(row)

    service_rows, service_totals = _per_student_rows(
        SERVICE_ITEMS, "ogrenimDisi", giderler, ctx.rows("nonEducationFees"), ctx,
    )
    dorm_rows, dorm_totals = _per_student_rows(
        DORM_ITEMS, "yurt", giderler, ctx.rows("dormitory"), ctx,
    )
    total_expenses = {
        y: operating_totals[y] + service_totals[y] + dorm_totals[y] for y in YEAR_KEYS
    }

    by_name = discount_lookup(as_list(ctx.discounts))
    burs_rows = []
    burs_totals = {y: {"studentCount": 0, "total": 0} for y in YEAR_KEYS}
    for name in BURS_NAMES:
        d = by_name.get(normalize_name(name)) or {"name": name, "mode": "percent", "value": 0, "ratio": 0}
        row = {"name": name}
        for y in YEAR_KEYS:
            students = income[y]["tuitionStudents"]
            count = discount_student_count(d, y, students)
            rate = discount_rate(d, y, students, income[y]["avgTuitionFee"], ctx.factors[y])
            total = income[y]["tuitionTotal"] * rate
            row[y] = {"studentCount": count, "avgPct": pct_to_display(discount_pct(d, y)), "total": total}
            burs_totals[y]["studentCount"] += count
            burs_totals[y]["total"] += total
        burs_rows.append(row)

    ratio_students_y1 = share(burs_totals["y1"]["studentCount"], income["y1"]["tuitionStudents"]) or 0
    ratio_amount_y1 = share(burs_totals["y1"]["total"], income["y1"]["tuitionTotal"]) or 0

    summary_rows = [
        {"label": "İşletme Giderleri", **operating_totals, "kind": "money"},
        {"label": "Öğrenim Dışı Maliyetler", **service_totals, "kind": "money"},
        {"label": "Yurt/Konaklama Giderleri", **dorm_totals, "kind": "money"},
        {"label": "Toplam Gider", **total_expenses, "kind": "money"},
        {"label": "Net Ciro", **net_ciro, "kind": "money"},
        {
            "label": "Gider / Net Ciro",
            **{y: pct_to_display(share(total_expenses[y], net_ciro[y]) or 0) for y in YEAR_KEYS},
            "kind": "percent",
        },
    ]

    logger.debug("Giderler model: total expenses y1=%s (%s)", total_expenses["y1"], code)
    return {
        "sheetTitle": SHEET_TITLE,
        "currencyCode": code,
        "yearMeta": year_meta,
        "factors": ctx.factors,
        "totals": {
            "operatingTotals": operating_totals,
            "svcTotals": service_totals,
            "dormTotals": dorm_totals,
            "totalExpenses": total_expenses,
            "netCiro": net_ciro,
            "discountTotals": {y: income[y]["totalDiscounts"] for y in YEAR_KEYS},
        },
        "sections": {
            "operating": {
                "title": f"GİDERLER (İŞLETME) / YIL ({code})",
                "rows": operating_rows,
                "totals": operating_totals,
            },
            "service": {
                "title": f"GİDERLER (ÖĞRENİM DIŞI HİZMETLERE YÖNELİK SATILAN MAL VE HİZMETLER) / YIL ({code})",
                "rows": service_rows,
                "totals": service_totals,
            },
            "dorm": {
                "title": f"GİDERLER (YURT, KONAKLAMA) / YIL ({code})",
                "rows": dorm_rows,
                "totals": dorm_totals,
            },
            "burs": {
                "title": f"BURS VE İNDİRİMLER / YIL ({code})",
                "rows": burs_rows,
                "totals": burs_totals,
                "ratios": {
                    "ratioStudentsY1": pct_to_display(ratio_students_y1),
                    "ratioAmountY1": pct_to_display(ratio_amount_y1),
                },
            },
            "summary": {"title": "ÖZET", "rows": summary_rows},
        },
        "meta": {"hasReport": bool(report)},
    }
