import logging
from datetime import timedelta
from decimal import Decimal

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Sum, Count, Avg, Q, DecimalField
from django.db.models.functions import TruncMonth
from django.shortcuts import get_object_or_404
from django.utils import timezone

from alumnihub.core.pagination import paginated_response_data
from alumnihub.core.permissions import IsCollegeStaff, can_manage_alumni, is_admin, scope_to_college
from alumnihub.core.utils import create_audit_log
from .filters import DonationFilter
from .models import Campaign, Donation
from .serializers import CampaignSerializer, DonationSerializer

logger = logging.getLogger('alumnihub.donations')


def annotated_campaigns(user):
    completed = Q(donations__payment_status='completed')
    return scope_to_college(user, Campaign.objects.all()).annotate(
        raised_amount=Sum('donations__amount', filter=completed, output_field=DecimalField()),
        donor_count=Count('donations__donor', filter=completed, distinct=True),
    )


def visible_donations(user):
    """Staff roles see their college's donations; everyone else only their own"""
    queryset = Donation.objects.select_related('donor', 'campaign')
    if can_manage_alumni(user):
        return scope_to_college(user, queryset)
    return queryset.filter(donor=user)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def campaign_list_create(request):
    """List campaigns or create one (admins)"""
    if request.method == 'GET':
        campaigns = annotated_campaigns(request.user)
        active = request.query_params.get('active')
        if active in ('true', '1'):
            campaigns = campaigns.filter(is_active=True)
        return Response(CampaignSerializer(campaigns, many=True).data)

    if not is_admin(request.user):
        return Response({'error': 'Only admins can create campaigns'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CampaignSerializer(data=request.data)
    if serializer.is_valid():
        campaign = serializer.save(college=request.user.college, created_by=request.user)
        create_audit_log(request=request, action='create', model_name='Campaign',
                         object_id=campaign.id, object_name=campaign.title)
        return Response(CampaignSerializer(campaign).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def campaign_detail(request, pk):
    """Retrieve or update a campaign"""
    campaign = get_object_or_404(annotated_campaigns(request.user), pk=pk)
    if request.method == 'GET':
        return Response(CampaignSerializer(campaign).data)

    if not is_admin(request.user):
        return Response({'error': 'Only admins can change campaigns'}, status=status.HTTP_403_FORBIDDEN)
    serializer = CampaignSerializer(campaign, data=request.data, partial=request.method == 'PATCH')
    if serializer.is_valid():
        serializer.save()
        return Response(serializer.data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def donation_list_create(request):
    """List visible donations or record a new pledge"""
    if request.method == 'GET':
        donations = DonationFilter(request.query_params, queryset=visible_donations(request.user)).qs
        return Response(paginated_response_data(request, donations, DonationSerializer))

    serializer = DonationSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        campaign = serializer.validated_data.get('campaign')
        if campaign and not campaign.is_active:
            return Response({'error': 'Campaign is not active'}, status=status.HTTP_400_BAD_REQUEST)
        if campaign and campaign.college_id not in (None, request.user.college_id):
            return Response({'error': 'Campaign belongs to another college'}, status=status.HTTP_400_BAD_REQUEST)
        donation = serializer.save(donor=request.user, college=request.user.college)
        logger.info(f"Donation {donation.id} recorded: {donation.amount} {donation.currency} by {request.user.username}")
        return Response(DonationSerializer(donation, context={'request': request}).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def donation_detail(request, pk):
    donation = get_object_or_404(visible_donations(request.user), pk=pk)
    return Response(DonationSerializer(donation, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def donation_update_status(request, pk):
    """
    Change the payment status of a donation.

    Allowed: pending -> completed | failed, completed -> refunded.
    """
    new_status = request.data.get('payment_status')
    with transaction.atomic():
        donation = get_object_or_404(
            scope_to_college(request.user, Donation.objects.select_for_update()), pk=pk
        )
        if not donation.can_transition_to(new_status):
            return Response(
                {'error': f'Cannot change payment status from {donation.payment_status} to {new_status}'},
                status=status.HTTP_400_BAD_REQUEST
            )
        old_status = donation.payment_status
        donation.payment_status = new_status
        if request.data.get('transaction_id'):
            donation.transaction_id = request.data['transaction_id']
        donation.save()

    create_audit_log(request=request, action='donation_status', model_name='Donation',
                     object_id=donation.id, object_name=str(donation),
                     changes={'payment_status': {'old': old_status, 'new': new_status}},
                     college=donation.college)
    return Response(DonationSerializer(donation, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsCollegeStaff])
def donation_summary(request):
    """Completed-donation totals, monthly breakdown and top campaigns"""
    completed = scope_to_college(request.user, Donation.objects.filter(payment_status='completed'))

    totals = completed.aggregate(
        total=Sum('amount', output_field=DecimalField()),
        count=Count('id'),
        donors=Count('donor', distinct=True),
        average=Avg('amount', output_field=DecimalField()),
    )

    since = (timezone.now() - timedelta(days=365)).date()
    monthly = completed.filter(created_at__date__gte=since).annotate(
        month=TruncMonth('created_at')
    ).values('month').annotate(
        total=Sum('amount', output_field=DecimalField()),
        count=Count('id'),
    ).order_by('month')

    top_campaigns = completed.filter(campaign__isnull=False).values(
        'campaign_id', 'campaign__title'
    ).annotate(
        total=Sum('amount', output_field=DecimalField()),
        count=Count('id'),
    ).order_by('-total')[:5]

    return Response({
        'summary': {
            'total_amount': totals['total'] or Decimal('0.00'),
            'donation_count': totals['count'],
            'donor_count': totals['donors'],
            'average_amount': (totals['average'] or Decimal('0.00')).quantize(Decimal('0.01')),
            'pending_count': scope_to_college(request.user, Donation.objects.filter(payment_status='pending')).count(),
        },
        'monthly': [
            {
                'month': row['month'].strftime('%Y-%m') if row['month'] else None,
                'total': row['total'],
                'count': row['count'],
            }
            for row in monthly
        ],
        'top_campaigns': [
            {
                'id': row['campaign_id'],
                'title': row['campaign__title'],
                'total': row['total'],
                'count': row['count'],
            }
            for row in top_campaigns
        ],
    })
