# example_tender.py
"""Example of a complete multi-stage tender evaluation."""

import logging

import numpy as np
from tender_evaluation import SourcingEvent

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

DOCS_OK = [
    {'name': 'Tax ID', 'status': 'Complete', 'validity': 'Valid'},
    {'name': 'Business License', 'status': 'Complete', 'validity': 'Valid'},
    {'name': 'Bank Guarantee', 'status': 'Complete', 'validity': 'Valid'},
]

config = {
    'sourcing_event_id': 'SE-2024-001',
    'title': 'Distribution Transformer 20kV',
    'vendors': [
        {
            'vendor_id': 'PT Alpha',
            'documents': DOCS_OK,
            'criteria': [
                {'name': 'Design Compliance', 'weight': 40, 'ai_score': 88},
                {'name': 'Performance', 'weight': 35, 'ai_score': 82},
                {'name': 'After Sales', 'weight': 25, 'ai_score': 75},
            ],
            'offer': {'initial_offer': 1_250_000_000, 'ai_score': 78},
        },
        {
            'vendor_id': 'PT Beta',
            'documents': DOCS_OK[:2] + [
                {'name': 'Bank Guarantee', 'status': 'Complete', 'validity': 'Pending'},
            ],
            'criteria': [
                {'name': 'Design Compliance', 'weight': 40, 'ai_score': 80},
                {'name': 'Performance', 'weight': 35, 'ai_score': 85},
                {'name': 'After Sales', 'weight': 25, 'ai_score': 90},
            ],
            'offer': {'initial_offer': 1_180_000_000, 'ai_score': 85},
        },
        {
            'vendor_id': 'PT Gamma',
            'documents': DOCS_OK[:2] + [
                {'name': 'Bank Guarantee', 'status': 'Complete', 'validity': 'Expired'},
            ],
            'criteria': [
                {'name': 'Design Compliance', 'weight': 40, 'ai_score': 92},
                {'name': 'Performance', 'weight': 35, 'ai_score': 90},
                {'name': 'After Sales', 'weight': 25, 'ai_score': 88},
            ],
            'offer': {'initial_offer': 1_100_000_000, 'ai_score': 92},
        },
    ],
    'cost_baseline': {
        'estimated': {'Core Steel': 420_000_000, 'Copper Winding': 380_000_000,
                      'Tank & Oil': 210_000_000, 'Accessories': 90_000_000},
        'vendor_prices': {
            'PT Alpha': {'Core Steel': 450_000_000, 'Copper Winding': 400_000_000,
                         'Tank & Oil': 230_000_000, 'Accessories': 95_000_000},
            'PT Beta': {'Core Steel': 430_000_000, 'Copper Winding': 390_000_000,
                        'Tank & Oil': 210_000_000, 'Accessories': 110_000_000},
            'PT Gamma': {'Core Steel': 415_000_000, 'Copper Winding': 370_000_000,
                         'Tank & Oil': 220_000_000, 'Accessories': 85_000_000},
        },
    },
}

event = SourcingEvent.from_config(config, rng=np.random.default_rng(2024))

# ── Administration ──

print("=== Administration ===\n")
event.set_document_field('PT Beta', 'Bank Guarantee', 'validity', 'Valid',
                         justification='Original verified at the tender office')
for vendor_id in event.vendors():
    event.submit(vendor_id, 'Administration')
print(event.administration.summary())
print()

# ── Technical ──

print("=== Technical ===\n")
event.set_technical_score('PT Alpha', 'After Sales', 65)
event.set_technical_justification('PT Alpha', 'After Sales',
                                  'No service center in the delivery region')
for vendor_id in event.vendors():
    event.submit(vendor_id, 'Technical')
print(event.technical.summary())
print()

# ── Commercial ──

print("=== Commercial negotiation ===\n")
while event.commercial.rounds_remaining:
    event.advance_round()
for vendor_id in event.vendors():
    event.submit(vendor_id, 'Commercial')
print(event.commercial.offer_table()[['vendor_id', 'initial_offer', 'final_offer',
                                      'delta_1', 'delta_2', 'delta_3', 'best']])
print()

print("=== Negotiation opportunities: PT Alpha ===\n")
print(event.negotiation_opportunities('PT Alpha'))
print()

# ── Ranking ──

print("=== Ranking ===\n")
print(event.summary())
