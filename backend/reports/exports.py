"""
Excel (openpyxl) exports of farmers, collectors, employees and olive purchases
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from io import BytesIO

from django.conf import settings
from django.db.models import Count, Sum, Max, Q, Prefetch
from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Font
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.collectors.models import CollectorGroup, DailyCollection, CollectorPayment
from backend.employees.models import Employee, EmployeePayment
from backend.farmers.models import Farmer
from backend.farmers.utils import box_sort_key
from backend.processing.models import ProcessingSession
from backend.stock.models import OilSafe, OlivePurchase

logger = logging.getLogger('backend.reports')

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

FARMER_HEADERS = [
    'Nom Agriculteur', 'Téléphone', 'Nombre de Boîtes', 'IDs des Boîtes', 'Nombre de Sessions',
    'Sessions Payées', 'Sessions Non Payées', 'Montant Total Dû ({currency})', 'Montant Restant ({currency})',
    'Total Olives (kg)', 'Total Huile (kg)', 'Rendement (%)', 'Date Ajout',
]
COLLECTION_HEADERS = [
    'Date', 'Groupe', 'Lieu', 'Client', 'Chakra', 'Galba', 'Chakra Nchira', 'Galba Nchira',
    'Total Chakra', 'Prix/Chakra ({currency})', 'Montant ({currency})', 'Notes', 'Créé le',
]
GROUP_STATS_HEADERS = [
    'Groupe', 'Statut', 'Nb Collectes', 'Total Chakra', 'Montant Total ({currency})', 'Total Payé ({currency})',
    'Solde ({currency})', 'Dernière Collecte',
]
GROUP_PAYMENT_HEADERS = ['Groupe', 'Montant ({currency})', 'Date de Paiement', 'Notes', 'Créé le']
EMPLOYEE_HEADERS = [
    'Nom Complet', 'Téléphone', 'Poste', "Date d'Embauche", 'Statut', 'Présences', 'Absences',
    'Demi-Journées', 'Total Payé ({currency})', 'Dernier Paiement', 'Créé le',
]
EMPLOYEE_PAYMENT_HEADERS = ['Employé', 'Montant ({currency})', 'Date de Paiement', 'Notes', 'Créé le']
PURCHASE_HEADERS = [
    'Date', 'Agriculteur', 'Téléphone', 'Coffre', 'Olives (kg)', 'Prix/kg ({currency})', 'Huile Produite (kg)',
    'Rendement (%)', 'Coût Total ({currency})', 'Notes', 'Créé le',
]
SAFE_STATS_HEADERS = [
    'Coffre', 'Nb Achats', 'Total Huile (kg)', 'Total Coût ({currency})', 'Rendement Moyen (%)', 'Capacité (kg)',
    'Stock Actuel (kg)', 'Utilisation (%)',
]


def normalize_export_value(value):
    if value is None:
        return ''
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.strftime('%Y-%m-%d %H:%M')
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float, bool)):
        return value
    return str(value)


def _new_workbook(title):
    """Workbook stamped with the mill's name and contact details"""
    workbook = Workbook()
    huilerie = settings.HUILERIE
    workbook.properties.title = title
    workbook.properties.creator = huilerie['COMPANY_NAME']
    workbook.properties.description = f"{huilerie['COMPANY_ADDRESS']} / Tél. {huilerie['COMPANY_PHONE']}"
    return workbook


def _append_header(sheet, headers):
    currency = settings.HUILERIE['CURRENCY']
    sheet.append([header.format(currency=currency) for header in headers])
    for cell in sheet[sheet.max_row]:
        cell.font = Font(bold=True)
    sheet.freeze_panes = 'A2'


def _append_row(sheet, values):
    sheet.append([normalize_export_value(value) for value in values])


def export_filename(prefix):
    return f"{prefix}_{timezone.localdate().isoformat()}.xlsx"


def workbook_response(workbook, filename):
    buffer = BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    response = HttpResponse(buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    response['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    return response


def _percentage(part, whole):
    if not whole:
        return Decimal('0.00')
    return (Decimal(part) / Decimal(whole) * 100).quantize(Decimal('0.01'))


def build_farmers_workbook():
    """One row per farmer with session, money and production totals"""
    workbook = _new_workbook('Données Huilerie')
    sheet = workbook.active
    sheet.title = 'Données Huilerie'
    _append_header(sheet, FARMER_HEADERS)

    farmers = Farmer.objects.prefetch_related(
        Prefetch('sessions', queryset=ProcessingSession.objects.prefetch_related('session_boxes'))
    ).order_by('name')

    for farmer in farmers:
        sessions = list(farmer.sessions.all())
        box_ids = sorted(
            {sb.box_id for session in sessions for sb in session.session_boxes.all()},
            key=box_sort_key,
        )
        total_due = sum((s.total_price for s in sessions if s.total_price is not None), Decimal('0.000'))
        total_paid = sum((s.amount_paid for s in sessions), Decimal('0.000'))
        olive_weight = sum((s.total_box_weight for s in sessions), Decimal('0.00'))
        oil_weight = sum((s.oil_weight for s in sessions if s.oil_weight and s.oil_weight > 0), Decimal('0.00'))

        _append_row(sheet, [
            farmer.name,
            farmer.phone,
            len(box_ids),
            ', '.join(box_ids),
            len(sessions),
            sum(1 for s in sessions if s.payment_status == 'paid'),
            sum(1 for s in sessions if s.payment_status != 'paid'),
            total_due,
            total_due - total_paid,
            olive_weight,
            oil_weight,
            _percentage(oil_weight, olive_weight),
            farmer.date_added.date() if farmer.date_added else None,
        ])
    return workbook


def build_collectors_workbook():
    workbook = _new_workbook('Collectes')

    sheet = workbook.active
    sheet.title = 'Collectes'
    _append_header(sheet, COLLECTION_HEADERS)
    collections = list(DailyCollection.objects.select_related('group').order_by('-collection_date', '-id'))
    for collection in collections:
        _append_row(sheet, [
            collection.collection_date, collection.group.name, collection.location, collection.client_name,
            collection.chakra_count, collection.galba_count, collection.nchira_chakra_count,
            collection.nchira_galba_count, collection.total_chakra, collection.price_per_chakra,
            collection.total_amount, collection.notes, collection.created_at,
        ])
    sheet.append([])
    _append_row(sheet, [
        'TOTAL', '', '', '',
        sum(c.chakra_count for c in collections),
        sum(c.galba_count for c in collections),
        sum(c.nchira_chakra_count for c in collections),
        sum(c.nchira_galba_count for c in collections),
        sum((c.total_chakra for c in collections), Decimal('0.00')),
        '',
        sum((c.total_amount for c in collections), Decimal('0.000')),
        '', '',
    ])

    stats = workbook.create_sheet('Stats par Groupe')
    _append_header(stats, GROUP_STATS_HEADERS)
    paid_by_group = dict(
        CollectorPayment.objects.values('group_id').annotate(total=Sum('amount')).values_list('group_id', 'total')
    )
    groups = CollectorGroup.objects.annotate(
        collection_count=Count('collections'),
        total_chakra=Sum('collections__total_chakra'),
        total_amount=Sum('collections__total_amount'),
        last_collection=Max('collections__collection_date'),
    ).order_by('name')
    for group in groups:
        total_amount = group.total_amount or Decimal('0.000')
        total_paid = paid_by_group.get(group.id) or Decimal('0.000')
        _append_row(stats, [
            group.name,
            'Actif' if group.is_active else 'Inactif',
            group.collection_count,
            group.total_chakra or Decimal('0.00'),
            total_amount,
            total_paid,
            total_amount - total_paid,
            group.last_collection,
        ])

    payments = workbook.create_sheet('Paiements')
    _append_header(payments, GROUP_PAYMENT_HEADERS)
    for payment in CollectorPayment.objects.select_related('group').order_by('-payment_date'):
        _append_row(payments, [payment.group.name, payment.amount, payment.payment_date, payment.notes,
                               payment.created_at])
    return workbook


def build_employees_workbook():
    workbook = _new_workbook('Employés')

    sheet = workbook.active
    sheet.title = 'Employés'
    _append_header(sheet, EMPLOYEE_HEADERS)
    employees = Employee.objects.annotate(
        presences=Count('attendance', filter=Q(attendance__status='present'), distinct=True),
        absences=Count('attendance', filter=Q(attendance__status='absent'), distinct=True),
        half_days=Count('attendance', filter=Q(attendance__status='half_day'), distinct=True),
    ).order_by('name')
    paid = {
        row['employee_id']: row
        for row in EmployeePayment.objects.values('employee_id').annotate(
            total=Sum('amount'), last=Max('payment_date')
        )
    }
    for employee in employees:
        payment_totals = paid.get(employee.id, {})
        _append_row(sheet, [
            employee.name, employee.phone, employee.position, employee.hire_date,
            'Actif' if employee.is_active else 'Inactif',
            employee.presences, employee.absences, employee.half_days,
            payment_totals.get('total') or Decimal('0.000'),
            payment_totals.get('last'),
            employee.created_at,
        ])

    payments = workbook.create_sheet('Paiements')
    _append_header(payments, EMPLOYEE_PAYMENT_HEADERS)
    for payment in EmployeePayment.objects.select_related('employee').order_by('-payment_date'):
        _append_row(payments, [payment.employee.name, payment.amount, payment.payment_date, payment.notes,
                               payment.created_at])
    return workbook


def build_purchases_workbook():
    workbook = _new_workbook('Achats')

    sheet = workbook.active
    sheet.title = 'Achats'
    _append_header(sheet, PURCHASE_HEADERS)
    for purchase in OlivePurchase.objects.select_related('safe').order_by('-purchase_date'):
        _append_row(sheet, [
            purchase.purchase_date, purchase.farmer_name, purchase.farmer_phone, purchase.safe.name,
            purchase.olive_weight, purchase.price_per_kg,
            purchase.oil_produced if purchase.oil_produced else 'En attente',
            purchase.yield_percentage, purchase.total_cost, purchase.notes, purchase.created_at,
        ])

    stats = workbook.create_sheet('Stats par Coffre')
    _append_header(stats, SAFE_STATS_HEADERS)
    safes = OilSafe.objects.annotate(
        purchase_count=Count('purchases'),
        total_oil=Sum('purchases__oil_produced'),
        total_olives=Sum('purchases__olive_weight', filter=Q(purchases__oil_produced__isnull=False)),
        total_cost=Sum('purchases__total_cost'),
    ).order_by('name')
    for safe in safes:
        _append_row(stats, [
            safe.name,
            safe.purchase_count,
            safe.total_oil or Decimal('0.00'),
            safe.total_cost or Decimal('0.000'),
            _percentage(safe.total_oil or 0, safe.total_olives),
            safe.capacity,
            safe.current_stock,
            safe.utilization_percentage,
        ])
    return workbook


def _export(builder, prefix):
    try:
        workbook = builder()
    except Exception as e:
        logger.error(f"Error building {prefix} workbook: {str(e)}", exc_info=True)
        return Response(
            {'error': 'An error occurred while generating the export'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
    return workbook_response(workbook, export_filename(prefix))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_farmers(request):
    """Farmers workbook"""
    logger.info(f"Farmers export requested by {request.user.username}")
    return _export(build_farmers_workbook, 'huilerie_export')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_collectors(request):
    """Collections, per-group stats and collector payments"""
    return _export(build_collectors_workbook, 'collecteurs_huilerie')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_employees(request):
    """Employees with attendance counts, and salary payments"""
    return _export(build_employees_workbook, 'employes_huilerie')


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def export_purchases(request):
    """Olive purchases and per-safe stats"""
    return _export(build_purchases_workbook, 'achats_huilerie')
