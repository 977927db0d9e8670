"""
TEMEL BİLGİLER (basic information) sheet model.

Mostly echoes ``inputs.temelBilgiler``: school officials, teaching
parameters, fee increase rates, inflation assumptions, current vs planned
headcounts, scholarship student counts and competitor fees.

Section H compares the previous scenario's plan with the realised figures
the user entered.  Planned money comes from the previous scenario's results
(USD); realised money is in the current input currency.  Converting either
side needs an FX rate, and when one is missing the value is left empty and
a warning row is added.
"""

from __future__ import annotations

import logging

from app.services.report.common import CurrencyContext, as_dict, get_path, pick_years
from app.services.report.kapasite_model import parse_academic_start_year
from app.utils.kademe import KADEME_DEFS, format_kademe_label, normalize_kademe_config
from app.utils.numbers import number_or_null, number_or_zero, pct_to_display
from app.utils.program_type import INTERNATIONAL, is_kademe_key_visible, normalize_program_type

logger = logging.getLogger(__name__)

DEFAULT_BASE_YEAR = 2026
PERF_FX_WARNING = "Önceki dönem USD karşılaştırması için ortalama kur girilmelidir."

UCRET_ROWS: tuple[tuple[str, str], ...] = (
    ("okulOncesi", "okulOncesi"),
    ("ilkokulYerel", "ilkokul"),
    ("ilkokulInt", "ilkokul"),
    ("ortaokulYerel", "ortaokul"),
    ("ortaokulInt", "ortaokul"),
    ("liseYerel", "lise"),
    ("liseInt", "lise"),
)

SCHOLAR_ROWS: tuple[tuple[str, str], ...] = (
    ("magisBasariBursu", "MAGİS Başarı Bursu"),
    ("maarifYetenekBursu", "Maarif Yetenek Bursu"),
    ("ihtiyacBursu", "İhtiyaç Bursu"),
    ("okulBasariBursu", "Okul Başarı Bursu"),
    ("tamEgitimBursu", "Tam Eğitim Bursu"),
    ("barinmaBursu", "Barınma Bursu"),
    ("turkceBasariBursu", "Türkçe Başarı Bursu"),
    ("uluslararasiYukumlulukIndirimi", "Vakfın Uluslararası Yükümlülüklerinden Kaynaklı İndirim"),
    ("vakifCalisaniIndirimi", "Vakıf Çalışanı İndirimi"),
    ("kardesIndirimi", "Kardeş İndirimi"),
    ("erkenKayitIndirimi", "Erken Kayıt İndirimi"),
    ("pesinOdemeIndirimi", "Peşin Ödeme İndirimi"),
    ("kademeGecisIndirimi", "Kademe Geçiş İndirimi"),
    ("temsilIndirimi", "Temsil İndirimi"),
    ("kurumIndirimi", "Kurum İndirimi"),
    ("istisnaiIndirim", "İstisnai İndirim"),
    ("yerelMevzuatIndirimi", "Yerel Mevzuatın Şart Koştuğu İndirim"),
)

# (summary key, label, HR roles summed for the planned column)
HEADCOUNT_ROWS: tuple[tuple[str, str, tuple[str, ...]], ...] = (
    ("turkPersonelYoneticiEgitimci", "Türk Personel Yönetici ve Eğitimci Sayısı",
     ("turk_mudur", "turk_mdyard", "turk_egitimci")),
    ("turkPersonelTemsilcilik", "Türk Personel Temsilcilik Personeli Sayısı", ("turk_temsil",)),
    ("yerelKadroluEgitimci", "Yerel Kadrolu Eğitimci Personel Sayısı", ("yerel_yonetici_egitimci",)),
    ("yerelUcretliVakaterEgitimci", "Yerel Ücretli (Vakater) Eğitimci Personel Sayısı",
     ("yerel_ucretli_egitimci",)),
    ("yerelDestek", "Yerel Destek Personel Sayısı", ("yerel_destek",)),
    ("yerelTemsilcilik", "Yerel Personel Temsilcilik Personeli Sayısı", ("yerel_ulke_temsil_destek",)),
    ("international", "International Personel Sayısı", ("int_yonetici_egitimci",)),
)


def build_fee_param_rows(base_year=None) -> list[dict]:
    """Inflation/parameter rows; labels carry calendar years around *base_year*."""
    base = base_year if isinstance(base_year, int) else DEFAULT_BASE_YEAR
    return [
        {"path": "inflation.expenseDeviationPct",
         "label": "Giderlerin Sapma Yüzdeliği (%... Olarak Hesaplanabilir)", "type": "percent"},
        {"path": "inflation.y2023", "label": f"{base - 3} YILI ENFLASYON ORANI", "type": "percent"},
        {"path": "inflation.y2024", "label": f"{base - 2} YILI ENFLASYON ORANI", "type": "percent"},
        {"path": "inflation.y2025", "label": f"{base - 1} YILI ENFLASYON ORANI", "type": "percent"},
        {"path": "inflation.y1", "label": f"1. YIL TAHMİNİ ENFLASYON ORANI ({base} YILI)", "type": "percent"},
        {"path": "inflation.y2", "label": f"2. YIL TAHMİNİ ENFLASYON ORANI ({base + 1} YILI)", "type": "percent"},
        {"path": "inflation.y3", "label": f"3. YIL TAHMİNİ ENFLASYON ORANI ({base + 2} YILI)", "type": "percent"},
        {"path": "inflation.currentSeasonAvgFee",
         "label": "Mevcut Eğitim Sezonu Ücreti (ortalama)", "type": "money"},
    ]


def compute_planned_headcounts(ik) -> dict:
    """Y1 headcounts summed over every level, per headcount summary row."""
    ik = as_dict(ik)
    by_level = as_dict(get_path(ik, "years.y1.headcountsByLevel"))
    if not by_level and isinstance(ik.get("headcountsByLevel"), dict):
        by_level = ik["headcountsByLevel"]

    def sum_role(role):
        return sum(number_or_zero(as_dict(level).get(role)) for level in by_level.values())

    return {key: sum(sum_role(r) for r in roles) for key, _, roles in HEADCOUNT_ROWS}


def get_scholarship_groups() -> list[dict]:
    groups = {"burs": [], "indirim": [], "diger": []}
    for key, label in SCHOLAR_ROWS:
        low = label.replace("İ", "i").lower()
        if "burs" in low:
            groups["burs"].append((key, label))
        elif "indir" in low:
            groups["indirim"].append((key, label))
        else:
            groups["diger"].append((key, label))
    labels = {"burs": "Burslar", "indirim": "İndirimler", "diger": "Diğer"}
    return [
        {"key": k, "label": labels[k], "rows": rows}
        for k, rows in groups.items() if rows
    ]


def compute_planned_perf(prev_report) -> dict | None:
    y1 = pick_years(prev_report)["y1"]
    if not isinstance(y1, dict):
        return None
    gelirler = number_or_zero(get_path(y1, "income.netIncome"))
    giderler = number_or_zero(get_path(y1, "expenses.totalExpenses"))
    return {
        "ogrenci": number_or_zero(get_path(y1, "students.totalStudents")),
        "gelirler": gelirler,
        "giderler": giderler,
        "karZarar": gelirler - giderler,
        "bursIndirim": number_or_zero(get_path(y1, "income.totalDiscounts")),
    }


def compute_current_students(inputs) -> int | float:
    inputs = as_dict(inputs)
    declared = number_or_zero(get_path(inputs, "kapasite.currentStudents"))
    if declared > 0:
        return declared
    rows = inputs.get("gradesCurrent") if isinstance(inputs.get("gradesCurrent"), list) else []
    return sum(number_or_zero(as_dict(r).get("studentsPerBranch")) for r in rows)


def compute_current_branches(inputs) -> int | float:
    inputs = as_dict(inputs)
    rows = inputs.get("gradesCurrent") if isinstance(inputs.get("gradesCurrent"), list) else []
    return sum(number_or_zero(as_dict(r).get("branchCount")) for r in rows)


def program_type_label(program_type) -> str:
    return "International" if normalize_program_type(program_type) == INTERNATIONAL else "Yerel"


def _positive(value):
    n = number_or_null(value)
    return n if n is not None and n > 0 else None


def _text(tb, path):
    value = get_path(tb, path)
    return "" if value is None else value


def _kademe_labels(kademeler) -> dict:
    labels = {d["key"]: format_kademe_label(d["label"], kademeler, d["key"]) for d in KADEME_DEFS}
    for base in ("ilkokul", "ortaokul", "lise"):
        labels[f"{base}Yerel"] = f"{labels[base]}-YEREL"
        labels[f"{base}Int"] = f"{labels[base]}-INT."
    return labels


def build_temel_bilgiler_model(school=None, scenario=None, inputs=None, report=None, prev_report=None,
                               currency_meta=None, prev_currency_meta=None, report_currency="usd",
                               program_type=None) -> dict:
    inputs = as_dict(inputs)
    school = as_dict(school)
    scenario = as_dict(scenario)
    tb = as_dict(inputs.get("temelBilgiler"))
    kademeler = normalize_kademe_config(tb.get("kademeler"))
    ptype = normalize_program_type(program_type or tb.get("programType") or scenario.get("program_type"))
    currency = CurrencyContext(scenario, currency_meta, report_currency)

    input_code = (
        str(currency.local_code or "").upper() if currency.input_currency == "LOCAL" else "USD"
    )
    local_code = str(currency.local_code or "LOCAL").upper()
    show_local = currency.show_local

    base_year = parse_academic_start_year(scenario.get("academic_year"))
    labels = _kademe_labels(kademeler)

    visible_ucret = [
        key for key, base in UCRET_ROWS
        if kademeler[base]["enabled"] and is_kademe_key_visible(key, ptype)
    ]
    visible_competitors = [d["key"] for d in KADEME_DEFS if kademeler[d["key"]]["enabled"]]

    rates = [number_or_zero(get_path(tb, f"ucretArtisOranlari.{k}")) for k in visible_ucret]
    avg_increase = pct_to_display(sum(rates) / len(rates)) if rates else 0

    current_students = compute_current_students(inputs)
    current_branches = compute_current_branches(inputs)
    students_per_class = current_students / current_branches if current_branches > 0 else 0

    planned_headcounts = compute_planned_headcounts(inputs.get("ik"))
    planned_perf = compute_planned_perf(prev_report)
    realised = as_dict(get_path(tb, "performans.gerceklesen"))

    prev_fx = _positive(as_dict(prev_currency_meta).get("fx_usd_to_local"))
    realised_fx = _positive(get_path(tb, "performans.prevYearRealizedFxUsdToLocal"))
    plan_fx = prev_fx or realised_fx
    needs_actual_conversion = (
        (not show_local and currency.input_currency == "LOCAL")
        or (show_local and currency.input_currency == "USD")
    )
    show_fx_warning = (show_local and not plan_fx) or (needs_actual_conversion and not realised_fx)

    def planned_display(value):
        n = number_or_null(value)
        if n is None or not show_local:
            return n
        return n * plan_fx if plan_fx else None

    def actual_display(value):
        n = number_or_null(value)
        if n is None or not needs_actual_conversion:
            return n
        if not realised_fx:
            return None
        return n * realised_fx if show_local else n / realised_fx

    gelir = number_or_null(realised.get("gelirler"))
    gider = number_or_null(realised.get("giderler"))
    actual_kar_zarar = (
        gelir - gider if gelir is not None and gider is not None
        else number_or_null(realised.get("karZarar"))
    )
    money_unit = local_code if show_local else "USD"

    def plan(key, money=True):
        if planned_perf is None:
            return None
        return planned_display(planned_perf[key]) if money else number_or_null(planned_perf[key])

    perf_rows = [
        ["Öğrenci Sayısı", plan("ogrenci", money=False),
         number_or_zero(realised.get("ogrenciSayisi")), "Öğrenci"],
        ["Gelirler", plan("gelirler"), actual_display(realised.get("gelirler")), money_unit],
        ["Giderler", plan("giderler"), actual_display(realised.get("giderler")), money_unit],
        ["Kar / Zarar", plan("karZarar"), actual_display(actual_kar_zarar), money_unit],
        ["Burs ve İndirimler", plan("bursIndirim"),
         actual_display(realised.get("bursVeIndirimler")), money_unit],
    ]
    if show_fx_warning:
        perf_rows.append(["Not", PERF_FX_WARNING, "", ""])
        logger.info("Previous-period comparison lacks an FX rate", extra={"scenario_id": scenario.get("id")})

    fee_rows = []
    for row in build_fee_param_rows(base_year):
        raw = get_path(tb, row["path"])
        if row["type"] == "percent":
            fee_rows.append([row["label"], pct_to_display(number_or_zero(raw)), "%"])
        else:
            fee_rows.append([row["label"], number_or_zero(raw), input_code])

    scholarship_rows = []
    for group in get_scholarship_groups():
        scholarship_rows.append([group["label"], ""])
        for key, label in group["rows"]:
            scholarship_rows.append(
                [label, number_or_zero(get_path(tb, f"bursIndirimOgrenciSayilari.{key}"))]
            )

    okul = as_dict(tb.get("okulEgitimBilgileri"))
    program_label = program_type_label(ptype)

    return {
        "title": "TEMEL BİLGİLER",
        "meta": {
            "currencyCode": input_code,
            "reportCurrency": currency.report_currency,
            "programType": ptype,
            "programLabel": program_label,
            "academicYear": scenario.get("academic_year") or "",
            "schoolName": school.get("name") or "",
            "countryName": school.get("country_name") or "",
            "countryCode": school.get("country_code") or "",
        },
        "sections": [
            {
                "title": "ÖZET",
                "tables": [{
                    "title": "Genel Göstergeler",
                    "headers": ["Gösterge", "Değer"],
                    "rows": [
                        ["Öğrenci (Mevcut)", current_students],
                        ["Şube (Mevcut)", current_branches],
                        ["Öğr./Sınıf (Fiili)", students_per_class],
                    ],
                }],
            },
            {
                "title": "A) Bölge / Ülke / Kampüs",
                "tables": [{
                    "title": "Bilgiler",
                    "headers": ["Alan", "Değer"],
                    "rows": [
                        ["BÖLGE", ""],
                        ["ÜLKE", school.get("country_name") or ""],
                        ["KAMPÜS / OKUL", school.get("name") or ""],
                        ["MÜDÜR", _text(tb, "yetkililer.mudur")],
                        ["ÜLKE TEMSİLCİSİ", _text(tb, "yetkililer.ulkeTemsilcisi")],
                        ["RAPORU HAZIRLAYAN", _text(tb, "yetkililer.raporuHazirlayan")],
                    ],
                }],
            },
            {
                "title": "Program Türü",
                "tables": [{
                    "title": "Seçim",
                    "headers": ["Program", "Değer"],
                    "rows": [["Program Türü", program_label]],
                }],
            },
            {
                "title": "B) Okul Eğitim Bilgileri",
                "tables": [{
                    "title": "Okul Eğitim Bilgileri",
                    "headers": ["Alan", "Değer"],
                    "rows": [
                        ["Eğitim Öğretim Döneminin Başlama Tarihi", okul.get("egitimBaslamaTarihi") or ""],
                        ["Zorunlu Eğitim Dönemleri", okul.get("zorunluEgitimDonemleri") or ""],
                        ["Bir Ders Süresi (dk)", number_or_zero(okul.get("birDersSuresiDakika"))],
                        ["Günlük Ders Saati", number_or_zero(okul.get("gunlukDersSaati"))],
                        ["Haftalık Ders (Bir Sınıf)", number_or_zero(okul.get("haftalikDersSaatiToplam"))],
                        ["Öğretmen Haftalık Ortalama", number_or_zero(okul.get("ogretmenHaftalikDersOrt"))],
                        ["Okulda Sabahçı / Öğlenci Uygulaması", okul.get("sabahciOglenci") or ""],
                        ["Okulda Uygulanan Program (ulusal, uluslararası)", okul.get("uygulananProgram") or ""],
                        ["Öğrenci (Mevcut)", current_students],
                        ["Şube (Mevcut)", current_branches],
                        ["Fiili Derslik Kullanım (öğrenci/sınıf)", students_per_class],
                        ["Kademeler Arasında Geçiş Sınavı (Varsa) Bilgileri",
                         okul.get("gecisSinaviBilgisi") or ""],
                    ],
                }],
            },
            {
                "title": "Kademeler (Düzenle)",
                "tables": [{
                    "title": "Kademeler",
                    "headers": ["Kademe", "Aktif", "Başlangıç", "Bitiş"],
                    "rows": [
                        [
                            d["label"],
                            "Evet" if kademeler[d["key"]]["enabled"] else "Hayır",
                            kademeler[d["key"]]["from"],
                            kademeler[d["key"]]["to"],
                        ]
                        for d in KADEME_DEFS
                    ],
                }],
            },
            {
                "title": "C) Okul Ücretleri (Yeni Eğitim Dönemi)",
                "tables": [
                    {
                        "title": "Ayarlar",
                        "headers": ["Parametre", "Değer"],
                        "rows": [
                            ["Ücret hesaplamayı aktif et", "Evet" if tb.get("okulUcretleriHesaplama") else "Hayır"],
                            ["Ortalama artış (%)", avg_increase],
                        ],
                    },
                    {
                        "title": "Okul Ücretleri Artış Oranları",
                        "headers": ["Kademe", "Artış Oranı (%)"],
                        "rows": [
                            [labels[k], pct_to_display(number_or_zero(get_path(tb, f"ucretArtisOranlari.{k}")))]
                            for k in visible_ucret
                        ],
                    },
                ],
            },
            {
                "title": "D) Tahmini Enflasyon ve Parametreler",
                "tables": [{
                    "title": "Enflasyon ve Parametreler",
                    "headers": ["Parametre", "Değer", "Birim"],
                    "rows": fee_rows,
                }],
            },
            {
                "title": "E) İnsan Kaynakları",
                "tables": [{
                    "title": "Mevcut vs Planlanan (IK)",
                    "headers": ["Kalem", "Mevcut", "Planlanan (IK)"],
                    "rows": [
                        [label, number_or_zero(get_path(tb, f"ikMevcut.{key}")), planned_headcounts[key]]
                        for key, label, _ in HEADCOUNT_ROWS
                    ],
                }],
            },
            {
                "title": "F) Burs ve İndirimler — Öğrenci Sayısı",
                "tables": [{
                    "title": "Öğrenci Sayıları",
                    "headers": ["Tür", "Öğrenci"],
                    "rows": scholarship_rows,
                }],
            },
            {
                "title": "G) Rakip Kurumların Analizi",
                "tables": [{
                    "title": "A/B/C Analizi",
                    "headers": ["Kademe", "A", "B", "C"],
                    "rows": [
                        [labels[k]] + [
                            number_or_zero(get_path(tb, f"rakipAnalizi.{k}.{col}")) for col in ("a", "b", "c")
                        ]
                        for k in visible_competitors
                    ],
                }],
            },
            {
                "title": "H) Performans (Önceki Dönem)",
                "tables": [
                    {
                        "title": "Kur Bilgisi",
                        "headers": ["Parametre", "Değer"],
                        "rows": [[
                            f"Önceki Dönem Ortalama Kur (Gerçekleşen) (1 USD = X {local_code})",
                            realised_fx or "",
                        ]],
                    },
                    {
                        "title": "Planlanan (Önceki Senaryo) vs Gerçek",
                        "headers": ["Kalem", "Plan", "Gerçek", "Birim"],
                        "rows": perf_rows,
                    },
                ],
            },
            {
                "title": "I) Değerlendirme",
                "tables": [{
                    "title": "Notlar",
                    "headers": ["Değerlendirme"],
                    "rows": [[tb.get("degerlendirme") or ""]],
                }],
            },
        ],
        "debug": {"hasReport": bool(report), "hasPrevReport": bool(prev_report)},
    }
