import logging
from botocore.exceptions import ClientError
from awsweeper.core.retry import error_code
from awsweeper.resources.base import DEPENDENCY_CODES, ResourceKind, tags_from_list

# delete_objects takes at most 1000 keys per call
DELETE_BATCH_SIZE = 1000


class Bucket(ResourceKind):
    type_name = 'aws_s3_bucket'
    service = 's3'
    not_found_codes = frozenset(['NoSuchBucket'])
    # Objects written between emptying and deleting; the next pass empties again
    dependency_codes = DEPENDENCY_CODES | {'BucketNotEmpty'}

    def list(self, client):
        result = []
        for bucket in client.list_buckets().get('Buckets', []):
            name = bucket['Name']
            result.append(self.describe(name, self._tags(client, name), name=name,
                                        created_at=bucket.get('CreationDate')))
        return result

    def _tags(self, client, name):
        try:
            return tags_from_list(client.get_bucket_tagging(Bucket=name).get('TagSet'))
        except ClientError as e:
            if error_code(e) in ('NoSuchTagSet', 'NoSuchBucket'):
                return {}
            raise

    def delete(self, client, resource_id):
        self._empty(client, resource_id)
        client.delete_bucket(Bucket=resource_id)

    def _empty(self, client, bucket_name):
        logging.info(f'Emptying bucket: {bucket_name}')
        uploads = client.list_multipart_uploads(Bucket=bucket_name).get('Uploads', [])
        for upload in uploads:
            client.abort_multipart_upload(Bucket=bucket_name, Key=upload['Key'], UploadId=upload['UploadId'])

        paginator = client.get_paginator('list_object_versions')
        for page in paginator.paginate(Bucket=bucket_name):
            objs = [{'Key': v['Key'], 'VersionId': v['VersionId']} for v in page.get('Versions', [])]
            objs += [{'Key': d['Key'], 'VersionId': d['VersionId']} for d in page.get('DeleteMarkers', [])]
            while objs:
                batch = objs[:DELETE_BATCH_SIZE]
                client.delete_objects(Bucket=bucket_name, Delete={'Objects': batch, 'Quiet': True})
                objs = objs[DELETE_BATCH_SIZE:]
