#!/usr/bin/env python3
"""DCC XML generator.

Serializes DCC-JSON into a Digital Calibration Certificate (DCC v3.3.0)
document. The element skeleton is fixed: mandatory blocks are always
written, with placeholders where the data has nothing, and every
placeholder is reported in the returned warnings.

generate_dcc_xml is deterministic and accepts any input; malformed parts of
the data are treated as missing.
"""

import logging
import math
import re
from contextlib import contextmanager
from typing import Any
from xml.sax.saxutils import escape

from ....core.config import generator_config
from .validation import validate_dcc_data

logger = logging.getLogger(__name__)

DCC_NS = "https://ptb.de/dcc"
SI_NS = "https://ptb.de/si"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
DCC_SCHEMA_VERSION = "3.3.0"
DCC_SCHEMA_LOCATION = "https://ptb.de/dcc/v3.3.0/dcc.xsd"

PLACEHOLDER_ID = "UNKNOWN"
PLACEHOLDER_DATE = "1970-01-01"
PLACEHOLDER_IDENTIFICATION = "N/A"
DEFAULT_PERFORMANCE_LOCATION = "laboratory"

INDENT = "  "
XML_ENTITIES = {'"': "&quot;"}
# Characters outside the XML 1.0 Char production, including lone surrogates
INVALID_XML_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

# Fixed bilingual names
SERIAL_NUMBER = [("de", "Seriennummer"), ("en", "Serial number")]
INVENTORY_NUMBER = [("de", "Inventarnummer"), ("en", "Inventory number")]
EQUIPMENT_NUMBER = [("de", "Equipment-Nr."), ("en", "Equipment number")]
TEST_EQUIPMENT_NUMBER = [("de", "Prüfmittel-Nr."), ("en", "Test equipment number")]
TAG_NUMBER = [("de", "Tag-Nr."), ("en", "Tag number")]
CALIBRATION_MARK = [("de", "Kalibrierzeichen"), ("en", "Calibration mark")]
ORDER_NUMBER = [("de", "Auftragsnummer"), ("en", "Order number")]
CERTIFICATE_NUMBER = [("de", "Kalibrierzertifikat-Nr."), ("en", "Calibration certificate number")]
ACCESSORY_TYPE = [("de", "Typ"), ("en", "Type")]
REMARKS = [("de", "Bemerkungen"), ("en", "Remarks")]
ADDITIONAL_INFORMATION = [("de", "Zusätzliche Informationen"), ("en", "Additional information")]
SET_POINT = [("de", "Sollwert"), ("en", "Set point")]
REFERENCE_VALUE = [("de", "Bezugswert"), ("en", "Reference value")]
MEASURED_VALUE = [("de", "Messwert"), ("en", "Measured value")]
DEVIATION = [("de", "Abweichung"), ("en", "Deviation")]
LIMIT_LOWER = [("de", "Zul. Abweichung (untere)"), ("en", "Acceptance limit (lower)")]
LIMIT_UPPER = [("de", "Zul. Abweichung (obere)"), ("en", "Acceptance limit (upper)")]
CONFORMITY = [("de", "Bewertung"), ("en", "Conformity")]

# Labels written in the certificate language; anything but German uses English
LABELS = {
    "de": {
        "item": "Prüfling",
        "accessory": "Zubehör",
        "accessory_component": "Zubehör/Komponente",
        "identifier": "Kennung",
        "laboratory": "Kalibrierlaboratorium",
        "customer": "Auftraggeber",
        "contact_person": "Ansprechpartner",
        "not_specified": "Nicht angegeben",
        "measurement_result": "Messergebnis",
        "result": "Ergebnis",
        "results": "Kalibrierergebnisse",
        "parameter": "Messparameter",
        "measuring_range": "Messbereich",
        "signal_output": "Signalausgang",
        "calibration_range": "Kalibrierbereich",
        "medium": "Medium",
        "medium_conditions": "Mediumbedingungen",
        "factors_as_found": "Kalibrierfaktoren (As Found)",
        "factors_as_left": "Kalibrierfaktoren (As Left)",
        "mpe": "MPE",
        "decision_rule": "Entscheidungsregel",
        "conformity_probability": "Konformitätswahrscheinlichkeit",
        "norm": "Norm",
        "reference_standard": "Referenzmaterial",
        "traceability": "Rückführung",
        "calibration_date": "Kalibrierdatum",
        "next_calibration": "Nächste Kalibrierung",
        "minimum": "Minimum",
        "maximum": "Maximum",
        "calibration_location": "Kalibrierort",
        "sops": "Kalibrierverfahren (SOPs)",
    },
    "en": {
        "item": "Calibration item",
        "accessory": "Accessory",
        "accessory_component": "Accessory/component",
        "identifier": "Identifier",
        "laboratory": "Calibration laboratory",
        "customer": "Customer",
        "contact_person": "Contact person",
        "not_specified": "Not specified",
        "measurement_result": "Measurement result",
        "result": "Result",
        "results": "Calibration results",
        "parameter": "Measured parameter",
        "measuring_range": "Measuring range",
        "signal_output": "Signal output",
        "calibration_range": "Calibration range",
        "medium": "Medium",
        "medium_conditions": "Medium conditions",
        "factors_as_found": "Calibration factors (as found)",
        "factors_as_left": "Calibration factors (as left)",
        "mpe": "MPE",
        "decision_rule": "Decision rule",
        "conformity_probability": "Conformity probability",
        "norm": "Standard",
        "reference_standard": "Reference material",
        "traceability": "Traceability",
        "calibration_date": "Calibration date",
        "next_calibration": "Next calibration",
        "minimum": "Minimum",
        "maximum": "Maximum",
        "calibration_location": "Calibration location",
        "sops": "Calibration procedures (SOPs)",
    },
}


def format_number(value: Any) -> str:
    """Literal text for a numeric value: 10.0 -> '10', 0.25 -> '0.25', True -> 'true'."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "INF" if value > 0 else "-INF"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def esc(value: Any) -> str:
    """Escape any value for use as XML text or attribute content."""
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return format_number(value)
    return escape(INVALID_XML_CHARS.sub("", str(value)), XML_ENTITIES)


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[dict]:
    """A list of objects; non-list values and non-object entries count as empty."""
    if not isinstance(value, list):
        return []
    return [entry if isinstance(entry, dict) else {} for entry in value]


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


class XmlLines:
    """Line-based XML writer with automatic indentation."""

    def __init__(self):
        self.lines: list[str] = []
        self.level = 0

    def raw(self, text: str):
        self.lines.append(f"{INDENT * self.level}{text}")

    @contextmanager
    def element(self, tag: str, attrs: dict[str, Any] | None = None):
        self.raw(f"<{tag}{self._attrs(attrs)}>")
        self.level += 1
        yield
        self.level -= 1
        self.raw(f"</{tag}>")

    def leaf(self, tag: str, value: Any, attrs: dict[str, Any] | None = None):
        self.raw(f"<{tag}{self._attrs(attrs)}>{esc(value)}</{tag}>")

    def empty(self, tag: str):
        self.raw(f"<{tag}/>")

    def text(self) -> str:
        return "\n".join(self.lines)

    @staticmethod
    def _attrs(attrs: dict[str, Any] | None) -> str:
        if not attrs:
            return ""
        return "".join(f' {name}="{esc(value)}"' for name, value in attrs.items())


class DccXmlGenerator:
    """Builds one DCC XML document; use generate_dcc_xml() instead of this class directly."""

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.core = _as_dict(data.get("coreData"))
        self.lang = str(self.core.get("languageCode") or generator_config.DEFAULT_LANGUAGE)
        self.country = self.core.get("countryCodeISO3166_1") or generator_config.DEFAULT_COUNTRY
        self.labels = LABELS["de"] if self.lang == "de" else LABELS["en"]
        self.w = XmlLines()
        self.warnings: list[str] = []

    def generate(self) -> tuple[str, list[str]]:
        w = self.w
        w.raw('<?xml version="1.0" encoding="UTF-8"?>')
        w.raw("<dcc:digitalCalibrationCertificate")
        w.raw(f'  xmlns:dcc="{DCC_NS}"')
        w.raw(f'  xmlns:si="{SI_NS}"')
        w.raw(f'  xmlns:xsi="{XSI_NS}"')
        w.raw(f'  xsi:schemaLocation="{DCC_NS} {DCC_SCHEMA_LOCATION}"')
        w.raw(f'  schemaVersion="{DCC_SCHEMA_VERSION}">')
        w.level = 1

        with w.element("dcc:administrativeData"):
            self._software()
            self._core_data()
            self._items()
            self._laboratory()
            self._resp_persons()
            self._customer()
            self._statements()

        with w.element("dcc:measurementResults"):
            self._measuring_equipments()
            self._measurement_results()

        self._comment()

        w.level = 0
        w.raw("</dcc:digitalCalibrationCertificate>")
        return w.text(), self.warnings

    # Shared blocks

    def _content(self, tag: str, contents: list[tuple[str, Any]]):
        with self.w.element(tag):
            for lang, text in contents:
                self.w.leaf("dcc:content", text, {"lang": lang})

    def _local_content(self, tag: str, text: Any):
        self._content(tag, [(self.lang, text)])

    def _identification(self, issuer: str, value: Any, names: list[tuple[str, Any]]):
        with self.w.element("dcc:identification"):
            self.w.leaf("dcc:issuer", issuer)
            self.w.leaf("dcc:value", value)
            self._content("dcc:name", names)

    def _real(self, value: Any, unit: Any, uncertainty: Any = None,
              coverage_factor: Any = None, coverage_probability: Any = None):
        with self.w.element("si:real"):
            self.w.leaf("si:value", value)
            self.w.leaf("si:unit", unit or "")
            if uncertainty is not None:
                with self.w.element("si:expandedUnc"):
                    self.w.leaf("si:uncertainty", uncertainty)
                    if coverage_factor is not None:
                        self.w.leaf("si:coverageFactor", coverage_factor)
                    if coverage_probability is not None:
                        self.w.leaf("si:coverageProbability", coverage_probability)

    def _quantity(self, ref_type: str, names: list[tuple[str, Any]], value: Any, unit: Any, **uncertainty):
        with self.w.element("dcc:quantity", {"refType": ref_type}):
            self._content("dcc:name", names)
            self._real(value, unit, **uncertainty)

    def _no_quantity_result(self, name: str):
        with self.w.element("dcc:result"):
            self._local_content("dcc:name", name)
            with self.w.element("dcc:data"):
                with self.w.element("dcc:quantity"):
                    self.w.empty("dcc:noQuantity")

    def _location(self, contact: dict):
        with self.w.element("dcc:location"):
            for key, tag in (("street", "dcc:street"), ("postCode", "dcc:postCode"), ("city", "dcc:city")):
                if contact.get(key):
                    self.w.leaf(tag, contact[key])
            self.w.leaf("dcc:countryCode", contact.get("country") or self.country)

    # Administrative data

    def _software(self):
        with self.w.element("dcc:dccSoftware"):
            with self.w.element("dcc:software"):
                self._content("dcc:name", [("en", generator_config.SOFTWARE_NAME)])
                self.w.leaf("dcc:release", generator_config.SOFTWARE_RELEASE)
                self.w.leaf("dcc:type", "application")

    def _core_data(self):
        core = self.core
        w = self.w
        with w.element("dcc:coreData"):
            w.leaf("dcc:countryCodeISO3166_1", self.country)
            w.leaf("dcc:usedLangCodeISO639_1", self.lang)
            w.leaf("dcc:mandatoryLangCodeISO639_1", self.lang)
            w.leaf("dcc:uniqueIdentifier", core.get("uniqueIdentifier") or PLACEHOLDER_ID)

            calibration_mark = core.get("calibrationMark")
            order_number = core.get("orderNumber")
            if calibration_mark or order_number:
                with w.element("dcc:identifications"):
                    if calibration_mark:
                        self._identification("calibrationLaboratory", calibration_mark, CALIBRATION_MARK)
                    if order_number:
                        self._identification("customer", order_number, ORDER_NUMBER)

            if core.get("previousReport"):
                with w.element("dcc:previousReport"):
                    with w.element("dcc:report"):
                        w.leaf("dcc:value", core["previousReport"])

            begin_date = core.get("beginPerformanceDate")
            end_date = core.get("endPerformanceDate") or begin_date
            w.leaf("dcc:beginPerformanceDate", begin_date or PLACEHOLDER_DATE)
            w.leaf("dcc:endPerformanceDate", end_date or PLACEHOLDER_DATE)
            w.leaf("dcc:performanceLocation", core.get("performanceLocation") or DEFAULT_PERFORMANCE_LOCATION)

    def _item_description(self, item: dict) -> str:
        labels = self.labels
        parts = []
        if item.get("description"):
            parts.append(esc_text(item["description"]))
        for key in ("parameter", "measuringRange", "signalOutput", "calibrationRange", "medium"):
            if item.get(key):
                parts.append(f"{labels[LABEL_KEYS[key]]}: {esc_text(item[key])}")

        conditions = _as_list(item.get("mediumConditions"))
        if conditions:
            joined = ", ".join(f"{esc_text(c.get('name'))}: {esc_text(c.get('value'))}" for c in conditions)
            parts.append(f"{labels['medium_conditions']}: {joined}")

        for key, label in (("calibrationFactorsAsFound", "factors_as_found"),
                           ("calibrationFactorsAsLeft", "factors_as_left")):
            factors = _as_list(item.get(key))
            if factors:
                parts.append(f"{labels[label]}: {', '.join(esc_text(f.get('value')) for f in factors)}")

        if item.get("mpe"):
            parts.append(f"{labels['mpe']}: {esc_text(item['mpe'])}")
        return "; ".join(parts)

    def _items(self):
        w = self.w
        items = _as_list(self.data.get("items")) or [{}]

        with w.element("dcc:items"):
            for index, item in enumerate(items, start=1):
                with w.element("dcc:item"):
                    self._local_content("dcc:name", item.get("name") or self.labels["item"])

                    if item.get("manufacturer"):
                        with w.element("dcc:manufacturer"):
                            self._local_content("dcc:name", item["manufacturer"])
                    if item.get("model"):
                        w.leaf("dcc:model", item["model"])

                    with w.element("dcc:identifications"):
                        written = 0
                        for key, issuer, names in ITEM_IDENTIFICATIONS:
                            if item.get(key):
                                self._identification(issuer, item[key], names)
                                written += 1
                        if not written:
                            self._identification(
                                "other", PLACEHOLDER_IDENTIFICATION, [(self.lang, self.labels["identifier"])]
                            )
                            self.warnings.append(
                                f"missing identifications for item {index} "
                                f"({item.get('name') or 'unnamed'}); placeholder identification added"
                            )

                    description = self._item_description(item)
                    if description:
                        self._local_content("dcc:description", description)

            for accessory in _as_list(self.data.get("accessories")):
                self._accessory(accessory)

    def _accessory(self, accessory: dict):
        w = self.w
        acc_type = accessory.get("type")
        with w.element("dcc:item"):
            self._local_content("dcc:name", accessory.get("description") or acc_type or self.labels["accessory"])
            with w.element("dcc:identifications"):
                if accessory.get("serialNumber"):
                    self._identification("manufacturer", accessory["serialNumber"], SERIAL_NUMBER)
                else:
                    self._identification("other", acc_type or PLACEHOLDER_IDENTIFICATION, ACCESSORY_TYPE)
            if accessory.get("description") and acc_type:
                self._local_content(
                    "dcc:description", f"{self.labels['accessory_component']}: {esc_text(acc_type)}"
                )

    def _laboratory(self):
        w = self.w
        lab = _as_dict(self.data.get("calibrationLaboratory"))
        with w.element("dcc:calibrationLaboratory"):
            if lab.get("calibrationLaboratoryCode"):
                w.leaf("dcc:calibrationLaboratoryCode", lab["calibrationLaboratoryCode"])
            with w.element("dcc:contact"):
                self._local_content("dcc:name", lab.get("name") or self.labels["laboratory"])
                for key in ("eMail", "phone", "fax"):
                    if lab.get(key):
                        w.leaf(f"dcc:{key}", lab[key])
                self._location(lab)

    def _resp_persons(self):
        w = self.w
        persons = _as_list(self.data.get("respPersons"))
        with w.element("dcc:respPersons"):
            if not persons:
                self.warnings.append("no responsible person (respPersons); placeholder person added")
                persons = [{"name": self.labels["not_specified"]}]

            for person in persons:
                with w.element("dcc:respPerson"):
                    with w.element("dcc:person"):
                        self._local_content("dcc:name", person.get("name") or self.labels["not_specified"])
                    if person.get("role"):
                        w.leaf("dcc:role", person["role"])
                    if person.get("isMainSigner"):
                        w.leaf("dcc:mainSigner", True)

    def _customer(self):
        w = self.w
        customer = _as_dict(self.data.get("customer"))
        with w.element("dcc:customer"):
            self._local_content("dcc:name", customer.get("name") or self.labels["customer"])
            for key in ("eMail", "phone"):
                if customer.get(key):
                    w.leaf(f"dcc:{key}", customer[key])
            self._location(customer)
            contact_person = customer.get("contactPerson")
            if contact_person:
                self._content("dcc:description", [
                    ("de", f"{LABELS['de']['contact_person']}: {esc_text(contact_person)}"),
                    ("en", f"{LABELS['en']['contact_person']}: {esc_text(contact_person)}"),
                ])

    def _statements(self):
        w = self.w
        labels = self.labels
        statements = _as_list(self.data.get("statements"))
        remarks = self.data.get("remarks")
        if not statements and not remarks:
            return

        with w.element("dcc:statements"):
            for statement in statements:
                with w.element("dcc:statement"):
                    if statement.get("name"):
                        self._local_content("dcc:name", statement["name"])
                    parts = []
                    if statement.get("description"):
                        parts.append(esc_text(statement["description"]))
                    for key, label in (("decisionRule", "decision_rule"),
                                       ("conformityProbability", "conformity_probability"),
                                       ("norm", "norm")):
                        if statement.get(key):
                            parts.append(f"{labels[label]}: {esc_text(statement[key])}")
                    if parts:
                        self._local_content("dcc:description", "\n".join(parts))
                    if statement.get("conformity"):
                        w.leaf("dcc:conformity", statement["conformity"])

            if remarks:
                with w.element("dcc:statement"):
                    self._content("dcc:name", REMARKS)
                    self._local_content("dcc:description", remarks)

    # Measurement results

    def _measuring_equipments(self):
        w = self.w
        labels = self.labels
        equipments = _as_list(self.data.get("measuringEquipments"))
        if not equipments:
            return

        with w.element("dcc:measuringEquipments"):
            for equipment in equipments:
                with w.element("dcc:measuringEquipment"):
                    self._local_content("dcc:name", equipment.get("name"))
                    if equipment.get("manufacturer"):
                        with w.element("dcc:manufacturer"):
                            self._local_content("dcc:name", equipment["manufacturer"])
                    if equipment.get("model"):
                        w.leaf("dcc:model", equipment["model"])

                    present = [entry for entry in EQUIPMENT_IDENTIFICATIONS if equipment.get(entry[0])]
                    if present:
                        with w.element("dcc:identifications"):
                            for key, issuer, names in present:
                                self._identification(issuer, equipment[key], names)

                    parts = []
                    for key, label in (("traceability", "traceability"),
                                       ("calibrationDate", "calibration_date"),
                                       ("nextCalibrationDate", "next_calibration")):
                        if equipment.get(key):
                            parts.append(f"{labels[label]}: {esc_text(equipment[key])}")
                    if parts:
                        self._local_content("dcc:description", "; ".join(parts))

    def _measurement_results(self):
        groups = _as_list(self.data.get("measurementResults"))
        if not groups:
            with self.w.element("dcc:measurementResult"):
                self._local_content("dcc:name", self.labels["measurement_result"])
                with self.w.element("dcc:results"):
                    self._no_quantity_result(self.labels["result"])
            return

        for index, group in enumerate(groups, start=1):
            self._measurement_result(index, group)

    def _measurement_result(self, index: int, group: dict):
        w = self.w
        labels = self.labels
        with w.element("dcc:measurementResult"):
            self._local_content("dcc:name", group.get("name") or labels["measurement_result"])

            parts = []
            if group.get("description"):
                parts.append(esc_text(group["description"]))
            if group.get("calibrationProcedure"):
                parts.append(esc_text(group["calibrationProcedure"]))
            if group.get("referenceStandard"):
                parts.append(f"{labels['reference_standard']}: {esc_text(group['referenceStandard'])}")
            if group.get("decisionRule"):
                parts.append(f"{labels['decision_rule']}: {esc_text(group['decisionRule'])}")
            if parts:
                self._local_content("dcc:description", "\n\n".join(parts))

            self._used_methods(group)
            self._influence_conditions(group)

            with w.element("dcc:results"):
                points = _as_list(group.get("results"))
                if not points:
                    self.warnings.append(
                        f"measurement result {index} ({group.get('name') or 'unnamed'}) has no result points; "
                        f"placeholder result added"
                    )
                    self._no_quantity_result(labels["result"])
                else:
                    with w.element("dcc:result"):
                        self._local_content("dcc:name", group.get("name") or labels["results"])
                        with w.element("dcc:data"):
                            for point in points:
                                self._result_point(point)

    def _used_methods(self, group: dict):
        methods = _as_list(group.get("usedMethods"))
        if not group.get("method") and not methods:
            return

        with self.w.element("dcc:usedMethods"):
            if group.get("method"):
                with self.w.element("dcc:usedMethod"):
                    self._local_content("dcc:name", group["method"])
            for method in methods:
                with self.w.element("dcc:usedMethod"):
                    self._local_content("dcc:name", method.get("name"))
                    if method.get("description"):
                        self._local_content("dcc:description", method["description"])

    def _influence_conditions(self, group: dict):
        w = self.w
        conditions = _as_list(group.get("influenceConditions"))
        if not conditions:
            return

        with w.element("dcc:influenceConditions"):
            for condition in conditions:
                with w.element("dcc:influenceCondition"):
                    self._local_content("dcc:name", condition.get("name"))
                    with w.element("dcc:data"):
                        unit = condition.get("unit")
                        if condition.get("min") is not None and condition.get("max") is not None:
                            for key, label in (("min", "minimum"), ("max", "maximum")):
                                with w.element("dcc:quantity"):
                                    self._local_content("dcc:name", self.labels[label])
                                    self._real(condition[key], unit)
                        elif condition.get("value") is not None:
                            with w.element("dcc:quantity"):
                                if condition.get("uncertainty") is not None:
                                    # Conditions carry no coverage data; k=2 / 95 % is the usual convention
                                    self._real(condition["value"], unit, condition["uncertainty"], 2, 0.95)
                                else:
                                    self._real(condition["value"], unit)
                        else:
                            with w.element("dcc:quantity"):
                                w.empty("dcc:noQuantity")

    def _result_point(self, point: dict):
        w = self.w
        with w.element("dcc:list"):
            if point.get("name"):
                self._local_content("dcc:name", point["name"])

            if point.get("setPoint") is not None:
                self._quantity("basic_setPoint", SET_POINT, point["setPoint"],
                               point.get("setPointUnit") or point.get("nominalUnit"))

            reference = _first_present(point.get("nominalValue"), point.get("referenceValue"))
            if reference is not None:
                unit = point.get("nominalUnit") or point.get("referenceUnit") or point.get("measuredUnit")
                self._quantity("basic_referenceValue", REFERENCE_VALUE, reference, unit)

            if point.get("measuredValue") is not None:
                self._quantity(
                    "basic_measuredValue", MEASURED_VALUE, point["measuredValue"], point.get("measuredUnit"),
                    uncertainty=point.get("uncertainty"),
                    coverage_factor=point.get("coverageFactor"),
                    coverage_probability=point.get("coverageProbability"),
                )

            if point.get("deviation") is not None:
                self._quantity("basic_measurementError", DEVIATION, point["deviation"],
                               point.get("deviationUnit") or point.get("measuredUnit"))

            tolerance = _first_present(point.get("allowedDeviation"), point.get("mpe"))
            if tolerance is not None:
                unit = point.get("allowedDeviationUnit") or point.get("mpeUnit") or point.get("measuredUnit")
                lower, upper = tolerance, tolerance
                if isinstance(tolerance, (int, float)) and not isinstance(tolerance, bool):
                    lower, upper = -abs(tolerance), abs(tolerance)
                self._quantity("basic_acceptanceLimitLower", LIMIT_LOWER, lower, unit)
                self._quantity("basic_acceptanceLimitUpper", LIMIT_UPPER, upper, unit)

            if point.get("conformity"):
                with w.element("dcc:quantity", {"refType": "basic_conformity"}):
                    self._content("dcc:name", CONFORMITY)
                    self._content("dcc:noQuantity", [(self.lang, point["conformity"])])

    def _comment(self):
        sops = _as_list(self.data.get("calibrationSOPs"))
        location = self.data.get("calibrationLocation")
        if not sops and not location:
            return

        labels = self.labels
        parts = []
        if location:
            location = _as_dict(location)
            post_city = f"{esc_text(location.get('postCode') or '')} {esc_text(location.get('city') or '')}".strip()
            fields = [location.get("name"), location.get("street"), post_city, location.get("country")]
            parts.append(f"{labels['calibration_location']}: {', '.join(esc_text(f) for f in fields if f)}")
        if sops:
            sop_lines = "\n".join(
                f"{esc_text(sop.get('sopNumber') or '')}: {esc_text(sop.get('description') or '')}" for sop in sops
            )
            parts.append(f"{labels['sops']}:\n{sop_lines}")

        with self.w.element("dcc:comment"):
            self._content("dcc:name", ADDITIONAL_INFORMATION)
            self._local_content("dcc:description", "\n\n".join(parts))


def esc_text(value: Any) -> str:
    """Plain text of a value for composing descriptions; escaping happens on output."""
    if value is None:
        return ""
    if isinstance(value, (bool, int, float)):
        return format_number(value)
    return INVALID_XML_CHARS.sub("", str(value))


LABEL_KEYS = {
    "parameter": "parameter",
    "measuringRange": "measuring_range",
    "signalOutput": "signal_output",
    "calibrationRange": "calibration_range",
    "medium": "medium",
}

# (DCC-JSON key, issuer, names) in output order
ITEM_IDENTIFICATIONS = [
    ("serialNumber", "manufacturer", SERIAL_NUMBER),
    ("inventoryNumber", "customer", INVENTORY_NUMBER),
    ("equipmentNumber", "customer", EQUIPMENT_NUMBER),
    ("testEquipmentNumber", "calibrationLaboratory", TEST_EQUIPMENT_NUMBER),
    ("tagNumber", "customer", TAG_NUMBER),
]

EQUIPMENT_IDENTIFICATIONS = [
    ("serialNumber", "manufacturer", SERIAL_NUMBER),
    ("equipmentNumber", "calibrationLaboratory", EQUIPMENT_NUMBER),
    ("certificateNumber", "calibrationLaboratory", CERTIFICATE_NUMBER),
    ("calibrationMark", "calibrationLaboratory", CALIBRATION_MARK),
]


def generate_dcc_xml(data: Any) -> tuple[str, list[str]]:
    """Generate DCC XML from DCC-JSON.

    Args:
        data: DCC-JSON dictionary; None or any non-dict value is treated as empty

    Returns:
        Tuple of (xml_text, warnings). Warnings list missing mandatory data
        first, then every placeholder the generator had to insert.
    """
    if not isinstance(data, dict):
        data = {}

    warnings = validate_dcc_data(data)
    xml_text, generation_warnings = DccXmlGenerator(data).generate()
    warnings.extend(generation_warnings)

    logger.info(f"Generated DCC XML ({len(xml_text)} chars) with {len(warnings)} warning(s)")
    return xml_text, warnings
