# projects/reviews.py

import logging
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count
from django.utils import timezone

from common.exceptions import BusinessRuleError, ConflictError, NotFoundError
from . import state_machine
from .access import get_visible_project, require_admin, require_contractor, require_owner
from .models import Project, ProjectReview
from .permissions import get_actor_id, get_role, is_admin_tier
from .timeline import record_event

logger = logging.getLogger(__name__)

REVIEWABLE_STATUSES = (Project.INSTALLATION_COMPLETED, Project.COMPLETED)

SUB_RATINGS = (
    'quality_rating',
    'communication_rating',
    'timeliness_rating',
    'professionalism_rating',
    'value_rating',
)


class ReviewService:

    def create_review(self, project_id, actor, data):
        """
        Owner reviews a finished installation. Submitting the review closes
        the project.
        """
        try:
            with transaction.atomic():
                project = get_visible_project(project_id, actor, for_update=True)
                require_owner(project, actor, 'Only the project owner can review the project')

                if project.status not in REVIEWABLE_STATUSES:
                    raise BusinessRuleError('Reviews can only be submitted once the installation is completed')
                if ProjectReview.objects.filter(project=project).exists():
                    raise ConflictError('A review has already been submitted for this project')

                photo_urls = list(data.get('photo_urls') or [])
                review = ProjectReview.objects.create(
                    project=project,
                    user_id=project.user_id,
                    contractor_id=project.contractor_id,
                    rating=data['rating'],
                    review_title=data.get('review_title') or '',
                    review_text=data.get('review_text') or '',
                    would_recommend=data.get('would_recommend'),
                    photo_urls=photo_urls,
                    has_photos=bool(photo_urls),
                    **{field: data.get(field) for field in SUB_RATINGS},
                )

                actor_id, actor_role = get_actor_id(actor), get_role(actor)
                record_review_events(project, review, actor_id, actor_role)

                if project.status == Project.INSTALLATION_COMPLETED:
                    state_machine.transition(project, Project.COMPLETED, save=False)
                    project.completed_at = timezone.now()
                    project.save(update_fields=['status', 'completed_at', 'updated_at'])
                    record_project_completed(project, actor_id, actor_role)
        except IntegrityError:
            raise ConflictError('A review has already been submitted for this project')

        logger.info(f"[ReviewService] {review.rating}-star review submitted for project {project.id}")
        return review

    def get_review(self, project_id, actor):
        project = get_visible_project(project_id, actor)
        review = ProjectReview.objects.filter(project=project).first()
        if review is None:
            raise NotFoundError('No review has been submitted for this project')
        return review

    def respond_to_review(self, project_id, actor, response):
        with transaction.atomic():
            project = get_visible_project(project_id, actor)
            require_contractor(project, actor, message='Only the assigned contractor can respond to this review')
            try:
                review = ProjectReview.objects.select_for_update().get(project=project)
            except ProjectReview.DoesNotExist:
                raise NotFoundError('No review has been submitted for this project')

            if review.contractor_response:
                raise ConflictError('You have already responded to this review')

            review.contractor_response = response
            review.contractor_responded_at = timezone.now()
            review.save(update_fields=['contractor_response', 'contractor_responded_at', 'updated_at'])

        logger.info(f"[ReviewService] Contractor responded to review on project {project.id}")
        return review

    def moderate_review(self, review_id, actor, is_visible=None, is_flagged=None, flag_reason=None):
        require_admin(actor)
        with transaction.atomic():
            try:
                review = ProjectReview.objects.select_for_update().select_related('project').get(id=review_id)
            except (ProjectReview.DoesNotExist, ValueError):
                raise NotFoundError('Review not found')

            if is_visible is not None:
                review.is_visible = is_visible
            if is_flagged is not None:
                review.is_flagged = is_flagged
                if not is_flagged:
                    review.flag_reason = ''
            if flag_reason is not None:
                review.flag_reason = flag_reason
            review.moderated_by = get_actor_id(actor)
            review.moderated_at = timezone.now()
            review.save()

            record_event(
                review.project,
                'admin_action',
                'Review moderated',
                description=review.flag_reason,
                actor_id=get_actor_id(actor),
                actor_role=get_role(actor),
                metadata={
                    'action': 'moderate_review',
                    'is_visible': review.is_visible,
                    'is_flagged': review.is_flagged,
                },
            )

        logger.info(
            f"[ReviewService] Review {review.id} moderated: visible={review.is_visible} flagged={review.is_flagged}"
        )
        return review

    def list_contractor_reviews(self, contractor_id, actor=None):
        """
        Reviews for a contractor with the rating summary.

        Hidden reviews are only listed for admins; the summary always counts
        visible reviews only.
        """
        visible = ProjectReview.objects.filter(contractor_id=contractor_id, is_visible=True)
        reviews = ProjectReview.objects.filter(contractor_id=contractor_id)
        if actor is None or not is_admin_tier(actor):
            reviews = visible

        stats = visible.aggregate(average_rating=Avg('rating'), total_reviews=Count('id'))
        average = stats['average_rating']
        summary = {
            'average_rating': f"{Decimal(str(average)).quantize(Decimal('0.01'))}" if average is not None else None,
            'total_reviews': stats['total_reviews'],
            'recommend_count': visible.filter(would_recommend=True).count(),
        }
        return reviews.order_by('-created_at'), summary

    def list_all_reviews(self, actor, filters=None):
        require_admin(actor)
        filters = filters or {}
        reviews = ProjectReview.objects.all()
        if filters.get('is_flagged') is not None:
            reviews = reviews.filter(is_flagged=filters['is_flagged'])
        if filters.get('is_visible') is not None:
            reviews = reviews.filter(is_visible=filters['is_visible'])
        if filters.get('rating'):
            reviews = reviews.filter(rating=filters['rating'])
        return reviews.order_by('-created_at')


def record_review_events(project, review, actor_id, actor_role):
    record_event(
        project,
        'review_submitted',
        'Review submitted',
        description=review.review_title,
        actor_id=actor_id,
        actor_role=actor_role,
        metadata={'rating': review.rating, 'would_recommend': review.would_recommend},
    )


def record_project_completed(project, actor_id, actor_role):
    record_event(
        project,
        'project_completed',
        'Project completed',
        actor_id=actor_id,
        actor_role=actor_role,
    )
