"""
RAPOR (detailed report) model → AOA.

The sheet is poured into a styled template, so every row has a fixed
absolute position and every value a fixed column.  Rows are built as
``{column name: value}`` records and flattened to ``RAPOR_WIDTH`` cells at
the end; the column positions live in ``RAPOR_COLUMNS`` only.

Money in the model is USD and is converted here when a local-currency
report was requested.
"""

from __future__ import annotations

from app.services.report.common import CurrencyContext, as_dict, as_list
from app.utils.numbers import number_or_null

RAPOR_WIDTH = 22

RAPOR_COLUMNS: dict[str, int] = {
    # header block
    "country": 9,
    "signature": 21,
    # generic label / value pairs
    "label": 1,
    "info_value": 15,
    # B. tuition table
    "edu": 8,
    "uniform": 10,
    "books": 12,
    "transport": 14,
    "meal": 16,
    "raise_pct": 18,
    "total": 20,
    # C.1 capacity, two label/value pairs per row
    "left_value": 9,
    "right_label": 14,
    "right_value": 19,
    # C.2 HR
    "hr_current": 14,
    "hr_planned": 18,
    # C.3 / C.4 amount tables
    "amount": 14,
    "ratio": 20,
    # C.7 scholarships and discounts
    "cur_count": 14,
    "planned_count": 17,
    "cost": 19,
    "analysis_value": 20,
    # C.8 competitors
    "competitor_a": 8,
    "competitor_b": 13,
    "competitor_c": 18,
    # D. performance
    "perf_planned": 6,
    "perf_actual": 12,
    "perf_variance": 18,
}

# absolute row counts reached before sections A and B
SECTION_A_ROW = 58
SECTION_B_ROW = 76

EMPTY = [["Rapor model empty"]]

HR_NOTE = "*Ideal bir okul isletmesinde egitimci personel basina dusen ogrenci sayisi 10-12 olmalidir."
REVENUE_NOTE = (
    "*Uniforma, kitap kirtasiye, yemek, servis gibi hizmetler gider olarak yazilmalidir "
    "ve en az %10-30 araliginda kar konulmalidir."
)
BAD_DEBT_TEXT = (
    "Onceki yillarda tahsil edilemeyen giderlerin hesaplanmasi suretiyle ogrenci basi ortalama "
    "bir gider okul fiyatlarina eklenmelidir."
)
DEVIATION_TEXT = (
    "Hedeflenen ogrenci sayisina uygun olarak hesaplanan isletme, burs, erken kayit ve kampanya "
    "giderlerinin toplamindan sonra yanilma payi olarak belli bir yuzdelik belirlenerek cikan "
    "ortalama ogrenci fiyatina eklenmelidir."
)
COMPETITOR_TEXT = (
    "Esdeger kurumlarla yarisabilecek egitim kalitesine ve ekonomik guce sahip olmak icin okul "
    "ucretinin rakip kurumlar ile yarisabilecek yeterlilikte olmasi gereklidir."
)
LEGISLATION_TEXT = (
    "Belirlenecek ucretin ulke mevzuatina uygun olmasi, ulkede belirlenen azami ucret artislarinin "
    "son uc yilin resmi enflasyon orani gibi parametreler dikkatte alinmalidir. Ayrica ev sahibi "
    "ulke ile yapilmis Protokol yukumlulukleri de mutlaka dikkate alinmalidir."
)
CURRENT_FEE_TEXT = (
    "Belirlenecek ucretin mevcut egitim donemi ile uyumlu olmasina azami onem gosterilmeli ve "
    "surdurulebilir devamlilik ilkesi gozetilmelidir."
)
EVALUATION_TEXT = (
    "Okulun lokasyon, fiziki sartlari, varsa karsilasilan zorluklar, bolgenin demografik yapisi, "
    "sosyal ekonomik durumu, enflasyon, belirtmek istediginiz hususlar, oneriler kisaca bir "
    "paragraf yazabilirsiniz."
)


def flatten(record: dict) -> list:
    """Named-field record → fixed-width row."""
    row = [None] * RAPOR_WIDTH
    for name, value in record.items():
        row[RAPOR_COLUMNS[name]] = value
    return row


def pad_to(aoa: list, row_count: int) -> None:
    """Append blank rows until *aoa* holds *row_count* rows."""
    while len(aoa) < row_count:
        aoa.append([])


def blank(aoa: list, count: int) -> None:
    aoa.extend([] for _ in range(max(0, int(count))))


def _text(value) -> str:
    return "" if value is None else str(value)


def _num_or_text(value):
    n = number_or_null(value)
    return n if n is not None else _text(value)


def _sum(rows, key):
    return sum(n for n in (number_or_null(as_dict(r).get(key)) for r in rows) if n is not None)


class RaporWriter:
    """Accumulates the RAPOR rows for one model."""

    def __init__(self, model: dict, currency: CurrencyContext):
        self.model = model
        self.currency = currency
        self.aoa: list[list] = []

    def money(self, value):
        return self.currency.result_money(value)

    def push(self, **record):
        self.aoa.append(flatten(record))

    def title(self, text):
        self.aoa.append([text])

    # ── blocks ────────────────────────────────────────────────────────────

    def header(self):
        m = self.model
        blank(self.aoa, 2)
        self.push(country=_text(m.get("countryName")))
        blank(self.aoa, 24)
        for i, key in enumerate(("schoolName", "principalName", "temsilciName", "reporterName")):
            if i:
                blank(self.aoa, 3)
            self.push(signature=_text(m.get(key)).upper())

    def school_info(self):
        m = self.model
        pad_to(self.aoa, SECTION_A_ROW)
        self.push(label="A. OKUL EĞİTİM BİLGİLERİ")
        blank(self.aoa, 2)
        rows = (
            ("Eğitim Öğretim Döneminin Başlama Tarihi", _text(m.get("periodStartDate"))),
            ("Okul Kapasitesi)", _num_or_text(m.get("schoolCapacity"))),
            ("Mevcut Öğrenci Sayısı", _num_or_text(m.get("currentStudents"))),
            ("Zorunlu Eğitim Dönemleri", _text(m.get("compulsoryEducation"))),
            ("Bir Ders Süresi", _num_or_text(m.get("lessonDuration"))),
            ("Günlük Ders Saati", _num_or_text(m.get("dailyLessonHours"))),
            ("Haftalık Ders Saati Toplamı (Bir Sınıfın) ", _num_or_text(m.get("weeklyLessonHours"))),
            ("Okulda Sabahçı / Öğlenci Uygulaması", _text(m.get("shiftSystem"))),
            ("Öğretmen Haftalık Ders Saati Ortalaması", _num_or_text(m.get("teacherWeeklyHoursAvg"))),
            ("Fiili Derslik Kullanım Yüzdeliği", _num_or_text(m.get("classroomUtilization"))),
            ("Geçiş Sınavı Bilgisi", _text(m.get("transitionExamInfo"))),
            ("Program Türü", _text(m.get("programType"))),
        )
        for label, value in rows:
            self.push(label=label, info_value=value)
        blank(self.aoa, 3)

    def tuition(self):
        code = self.currency.currency_code
        pad_to(self.aoa, SECTION_B_ROW)
        self.push(label="B. OKUL ÜCRETLERİ TABLOSU (YENİ EĞİTİM DÖNEMİ)")
        blank(self.aoa, 2)
        self.push(
            label="Kademe",
            edu=f"Eğitim Ücreti ({code})",
            uniform=f"Üniforma ({code})",
            books=f"Kitap KKirtasiye ({code})",
            transport=f"Ulaşılmaz ({code})",
            meal=f"Yemek ({code})",
            raise_pct="Artış Yüzdesi",
            total=f"Total Ücret ({code})",
        )
        for r in as_list(self.model.get("tuitionTable")):
            r = as_dict(r)
            self.push(
                label=_text(r.get("level") or r.get("kademe") or ""),
                edu=self.money(r.get("edu")),
                uniform=self.money(r.get("uniform")),
                books=self.money(r.get("books")),
                transport=self.money(r.get("transport")),
                meal=self.money(r.get("meal")),
                raise_pct=_num_or_text(r.get("raisePct")),
                total=self.money(r.get("total")),
            )
        blank(self.aoa, 1)

    def parameters(self):
        self.title("C. OKUL ÜCRETİ HESAPLAMA PARAMETRELERİ")
        self.aoa.append(["No", "Parametre", "Veri"])
        for p in as_list(self.model.get("parameters")):
            p = as_dict(p)
            value = p.get("value")
            if str(p.get("valueType") or "").lower() == "currency":
                value = self.money(value)
            else:
                value = _num_or_text(value)
            self.aoa.append([_text(p.get("no")), _text(p.get("desc")), value])

    def capacity(self):
        cap = as_dict(self.model.get("capacity"))
        blank(self.aoa, 1)
        self.title("C.1 KAPASİTE KULLANIMI")
        blank(self.aoa, 1)
        self.push(label="Öğrenci Kapasite Bilgileri", right_label="Sınıf Kapasite Bilgileri")
        left = (
            ("Bina Kapasitesi", "buildingCapacity"),
            ("Mevcut Öğrenci Sayısı", "currentStudents"),
            ("Planlanan Öğrenci Sayısı", "plannedStudents"),
            ("Kapasite Kullanım Yüzdeliği", "plannedUtilization"),
            (None, None),
        )
        right = (
            ("Kapasiteye Uygun Derslik Sayısı", "plannedBranches"),
            ("Mevcut Derslik Sayısı", "totalBranches"),
            ("Kullanılan Derslik Sayısı", "usedBranches"),
            ("Sınıf Doluluk Oranı", "avgStudentsPerClass"),
            ("Sınıf Doluluk Oranı (Planlanan)", "avgStudentsPerClassPlanned"),
        )
        for (l_label, l_key), (r_label, r_key) in zip(left, right):
            self.push(
                label=l_label,
                left_value=_num_or_text(cap.get(l_key)) if l_key else None,
                right_label=r_label,
                right_value=_num_or_text(cap.get(r_key)),
            )

    def hr(self):
        blank(self.aoa, 1)
        self.title("C.2. INSAN KAYNAKLARI ( PLANLAMA TABLOSU VERILERI)")
        self.push(hr_current="Mevcut", hr_planned="Planlanan")
        for r in as_list(self.model.get("hr")):
            r = as_dict(r)
            self.push(
                label=_text(r.get("item") or r.get("name") or ""),
                hr_current=_num_or_text(r.get("current")),
                hr_planned=_num_or_text(r.get("planned")),
            )
        self.push(label=HR_NOTE)

    def amount_table(self, title, header, rows):
        """Amount/ratio table with a ``Toplam`` row summed from *rows*."""
        blank(self.aoa, 1)
        self.title(title)
        self.push(label=header, amount="Tutar", ratio="% Orani")
        for r in rows:
            r = as_dict(r)
            self.push(
                label=_text(r.get("name") or ""),
                amount=self.money(r.get("amount")),
                ratio=_num_or_text(r.get("ratio")),
            )
        total = _sum(rows, "amount")
        self.push(label="Toplam", amount=self.money(total), ratio=1 if total > 0 else 0)

    def discount_group(self, label, prefix, rows, analysis):
        analysis = as_dict(analysis)
        self.push(label=label, cur_count="MEVCUT DONEM", planned_count="PLANLANAN DONEM")
        self.push(cur_count="Ogrenci Sayisi", planned_count="Ogrenci Sayisi", cost="Maliyet")
        for r in rows:
            r = as_dict(r)
            self.push(
                label=_text(r.get("name") or ""),
                cur_count=_num_or_text(r.get("cur")),
                planned_count=_num_or_text(r.get("planned")),
                cost=self.money(r.get("cost")),
            )
        self.push(
            label="Toplam",
            cur_count=_sum(rows, "cur"),
            planned_count=_sum(rows, "planned"),
            cost=self.money(_sum(rows, "cost")),
        )
        blank(self.aoa, 1)
        self.push(label=f"Toplam {prefix} Hedeflenen Ogrenci Sayisina Bolumu",
                  analysis_value=self.money(analysis.get("perTargetStudent")))
        self.push(label=f"{prefix} Ogrencilerin Toplam Ogrenci icindeki %",
                  analysis_value=_num_or_text(analysis.get("studentShare")))
        self.push(label=f"{prefix} Velilerden Alinan Ogrenci Gelirleri icindeki %",
                  analysis_value=_num_or_text(analysis.get("revenueShare")))
        self.push(label=f"Agirlikli {prefix} Ortalamasi %",
                  analysis_value=_num_or_text(analysis.get("weightedAvgRate")))
        blank(self.aoa, 1)

    def discounts(self):
        m = self.model
        analysis = as_dict(get_analysis(m))
        blank(self.aoa, 1)
        self.title("C.7. BURS VE INDIRIM ORANLARI ( BURS VE INDIRIMLER GENELGESI)")
        self.discount_group("Burslar", "Burs", as_list(m.get("scholarships")), analysis.get("scholarships"))
        self.discount_group("Indirimler", "Indirim", as_list(m.get("discounts")), analysis.get("discounts"))

    def competitors(self):
        blank(self.aoa, 1)
        self.title("C.8. RAKIP KURUMLARIN ANALIZI ( PLANLAMA EXCELL TABLOSU VERILERI)")
        self.aoa.append([COMPETITOR_TEXT])
        blank(self.aoa, 1)
        self.push(competitor_a="A Kurum Fiyati", competitor_b="B Kurum Fiyati", competitor_c="C Kurum Fiyati")
        for r in as_list(self.model.get("competitors")):
            r = as_dict(r)
            self.push(
                label=_text(r.get("level") or ""),
                competitor_a=self.money(r.get("a")),
                competitor_b=self.money(r.get("b")),
                competitor_c=self.money(r.get("c")),
            )

    def performance(self):
        m = self.model
        blank(self.aoa, 1)
        self.title("D. GERCEKLESEN VE GERCEKLESMESI PLANLANAN /PERFORMANS")
        year = number_or_null(m.get("academicStartYear"))
        if year is not None:
            period = f"{int(year)}-{int(year) + 1}"
        else:
            period = _text(m.get("academicYear") or "")
        prefix = f"{period} Donemi" if period else "Donem"
        self.push(
            perf_planned=f"{prefix} Planlanan",
            perf_actual=f"{prefix} Gerceklesen",
            perf_variance="Sapma Yuzdesi",
        )
        for r in as_list(m.get("performance")):
            r = as_dict(r)
            label = _text(r.get("metric") or "")
            is_count = "ogrenci" in label.lower()

            def cell(value):
                if is_count or number_or_null(value) is None:
                    return _num_or_text(value)
                return self.money(value)

            self.push(
                label=label,
                perf_planned=cell(r.get("planned")),
                perf_actual=cell(r.get("actual")),
                perf_variance=_num_or_text(r.get("variance")),
            )

    def build(self) -> list[list]:
        m = self.model
        self.header()
        self.school_info()
        self.tuition()
        self.parameters()
        self.capacity()
        self.hr()
        self.amount_table("C.3. GELIRLER ( PLANLAMA EXCEL TABLOSU VERILERI)", "Gelirler",
                          as_list(m.get("revenues")))
        self.push(label=REVENUE_NOTE)
        detailed = as_dict(m.get("parametersMeta")).get("detailedExpenses")
        self.amount_table("C.4. GIDERLER ( PLANLAMA EXCEL TABLOSU VERILERI)", "Giderler",
                          detailed if isinstance(detailed, list) else as_list(m.get("expenses")))

        blank(self.aoa, 1)
        self.title("C.5. TAHSIL EDILEMEYECEK GELIRLER")
        self.aoa.append([BAD_DEBT_TEXT])
        blank(self.aoa, 1)
        self.title("C.6. GIDERLERIN SAPMA YUZDELIGI (%... OLARAK HESAPLANABILIR)")
        self.aoa.append([DEVIATION_TEXT])

        self.discounts()
        self.competitors()

        blank(self.aoa, 1)
        self.title("C.9. YEREL MEVZUATTA UYGUNLUK (YASAL AZAMI ARTIS)")
        self.aoa.append([LEGISLATION_TEXT])
        blank(self.aoa, 1)
        self.title("C.10. MEVCUT EGITIM SEZONU UCRETI")
        self.aoa.append([CURRENT_FEE_TEXT])
        self.aoa.append(["Bu Sayfa Komisyon Uyeleri Tarafindan Doldurulacaktir."])

        self.performance()

        blank(self.aoa, 1)
        self.title("E. DEGERLENDIRME")
        self.aoa.append([EVALUATION_TEXT])
        blank(self.aoa, 1)
        self.title("F. KOMISYON GORUS VE ONERILERI")
        blank(self.aoa, 1)
        return self.aoa


def get_analysis(model) -> dict:
    meta = as_dict(as_dict(model).get("parametersMeta"))
    return as_dict(meta.get("discountAnalysis")) or as_dict(as_dict(model).get("discountAnalysis"))


def build_rapor_aoa(model=None, report_currency="usd", currency_meta=None) -> list[list]:
    if not isinstance(model, dict):
        return [list(r) for r in EMPTY]
    currency = CurrencyContext(None, currency_meta, report_currency)
    return RaporWriter(model, currency).build()
