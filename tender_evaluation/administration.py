# administration.py
"""Administration stage: binary document-compliance gate."""

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Union

import pandas as pd

from .errors import NotFoundError, ValidationError
from .models import (
    AdministrationResult,
    Document,
    DocumentEdit,
    DocumentStatus,
    DocumentValidity,
    Stage,
    coerce_enum,
)
from .records import EvaluationRecordStore

logger = logging.getLogger(__name__)


class AdministrationGate:
    """Pass/Not Pass evaluation of each vendor's submitted documents.

    A vendor passes only when every document is Complete and Valid. Evaluators
    can correct a document's status or validity until the vendor's record is
    submitted; submission freezes the result used as the eligibility gate.
    """

    STAGE = Stage.ADMINISTRATION
    EDITABLE_FIELDS = {"status": DocumentStatus, "validity": DocumentValidity}

    def __init__(self, store: EvaluationRecordStore):
        self.store = store
        self._documents: Dict[str, List[Document]] = {}
        self._edits: Dict[str, List[DocumentEdit]] = {}
        self._frozen: Dict[str, AdministrationResult] = {}

    @staticmethod
    def evaluate(documents: Iterable[Document]) -> AdministrationResult:
        """Pass iff every document is Complete and Valid (an empty list passes)."""
        if all(doc.is_compliant for doc in documents):
            return AdministrationResult.PASS
        return AdministrationResult.NOT_PASS

    # === Setup ===

    def prepare(self, vendor_id: str,
                documents: Iterable[Union[Document, Dict[str, Any]]]) -> List[Document]:
        """Validate a vendor's documents without opening its record."""
        docs = [d if isinstance(d, Document) else Document.from_dict(d) for d in documents]
        names = [d.name for d in docs]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValidationError(
                f"Duplicate documents for vendor '{vendor_id}': {', '.join(duplicates)}"
            )
        return docs

    def open_vendor(self, vendor_id: str,
                    documents: Iterable[Union[Document, Dict[str, Any]]]) -> AdministrationResult:
        """
        Seed a vendor's documents and open its administration record

        Args:
            vendor_id: Vendor identifier
            documents: Document objects or dicts with name, status and validity

        Returns:
            The initial Pass/Not Pass result
        """
        docs = self.prepare(vendor_id, documents)
        self.store.open(vendor_id, self.STAGE)
        self._documents[vendor_id] = docs
        self._edits[vendor_id] = []
        return self.evaluate(docs)

    # === Evaluator actions ===

    def set_document_field(self, vendor_id: str, doc_name: str, field: str,
                           value: Any, justification: str = "") -> AdministrationResult:
        """
        Change a document's status or validity and re-run the gate

        Args:
            vendor_id: Vendor identifier
            doc_name: Name of the document to change
            field: 'status' or 'validity'
            value: New value (enum member or its display string)
            justification: Reason for the change, stored in the edit log

        Returns:
            The re-evaluated Pass/Not Pass result

        Raises:
            StateError: if the vendor's administration record is Final
            NotFoundError: if the vendor or document does not exist
            ValidationError: if the field or value is not allowed
        """
        self.store.require_open(vendor_id, self.STAGE)
        if field not in self.EDITABLE_FIELDS:
            raise ValidationError(
                f"Unknown document field: {field!r}. Use 'status' or 'validity'."
            )
        new_value = coerce_enum(self.EDITABLE_FIELDS[field], value, f"document {field}")
        document = self._document(vendor_id, doc_name)

        old_value = getattr(document, field)
        setattr(document, field, new_value)
        self._edits[vendor_id].append(DocumentEdit(
            document=doc_name,
            field=field,
            old_value=old_value.value,
            new_value=new_value.value,
            justification=justification or "",
        ))
        logger.debug("Vendor %s document %r: %s %s -> %s",
                     vendor_id, doc_name, field, old_value.value, new_value.value)
        return self.evaluate(self._documents[vendor_id])

    def set_document_justification(self, vendor_id: str, doc_name: str, text: str):
        """Attach a justification to the latest edit of a document."""
        self.store.require_open(vendor_id, self.STAGE)
        self._document(vendor_id, doc_name)
        edits = self._edits[vendor_id]
        for i in range(len(edits) - 1, -1, -1):
            if edits[i].document == doc_name:
                edits[i] = replace(edits[i], justification=text or "")
                return
        raise NotFoundError(
            f"Document '{doc_name}' of vendor '{vendor_id}' has not been edited."
        )

    def submit(self, vendor_id: str) -> AdministrationResult:
        """Finalize the vendor's administration record and freeze its result."""
        documents = self._vendor_documents(vendor_id)
        result = self.evaluate(documents)
        self.store.finalize(vendor_id, self.STAGE)
        self._frozen[vendor_id] = result
        return result

    # === Queries ===

    def result(self, vendor_id: str) -> AdministrationResult:
        """Frozen result once submitted, live result before that."""
        if vendor_id in self._frozen:
            return self._frozen[vendor_id]
        return self.evaluate(self._vendor_documents(vendor_id))

    def documents(self, vendor_id: str) -> List[Document]:
        """Copies of the vendor's documents."""
        return [replace(doc) for doc in self._vendor_documents(vendor_id)]

    def edits(self, vendor_id: str) -> List[DocumentEdit]:
        self._vendor_documents(vendor_id)
        return list(self._edits[vendor_id])

    def vendors(self) -> List[str]:
        return list(self._documents)

    def summary(self) -> pd.DataFrame:
        """Returns one row per vendor with its gate result and record status."""
        rows = []
        for vendor_id, documents in self._documents.items():
            record = self.store.get(vendor_id, self.STAGE)
            rows.append({
                "vendor_id": vendor_id,
                "documents": len(documents),
                "complete_valid": sum(doc.is_compliant for doc in documents),
                "result": self.result(vendor_id).value,
                "status": record.status.value,
                "submitted_at": record.submitted_at,
            })
        return pd.DataFrame(rows, columns=["vendor_id", "documents", "complete_valid",
                                           "result", "status", "submitted_at"])

    # === Snapshots ===

    def to_dict(self) -> Dict[str, Any]:
        return {
            vendor_id: {
                "documents": [doc.to_dict() for doc in documents],
                "edits": [edit.to_dict() for edit in self._edits[vendor_id]],
            }
            for vendor_id, documents in self._documents.items()
        }

    def restore(self, data: Dict[str, Any]):
        """Load vendor documents from a snapshot; records must already be restored."""
        for vendor_id, payload in data.items():
            record = self.store.get(vendor_id, self.STAGE)
            self._documents[vendor_id] = [Document.from_dict(d) for d in payload["documents"]]
            self._edits[vendor_id] = [DocumentEdit.from_dict(e) for e in payload.get("edits", [])]
            if record.is_final:
                self._frozen[vendor_id] = self.evaluate(self._documents[vendor_id])

    # === Internals ===

    def _vendor_documents(self, vendor_id: str) -> List[Document]:
        try:
            return self._documents[vendor_id]
        except KeyError:
            raise NotFoundError(
                f"Vendor '{vendor_id}' has no administration evaluation."
            ) from None

    def _document(self, vendor_id: str, doc_name: str) -> Document:
        for doc in self._vendor_documents(vendor_id):
            if doc.name == doc_name:
                return doc
        raise NotFoundError(f"Vendor '{vendor_id}' has no document named '{doc_name}'.")
