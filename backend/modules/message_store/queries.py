"""
GraphQL documents for the ai_conversations and ai_messages collections.
"""

CREATE_AI_CONVERSATION = """
  mutation CreateAIConversation($objects: [ai_conversationsInsertInput!]!) {
    insertIntoai_conversationsCollection(objects: $objects) {
      affectedCount
      records {
        id
        user_id
        user_role
        title
        description
        metadata
        previous_response_id
        last_message_at
        created_at
      }
    }
  }
"""

GET_USER_CONVERSATIONS = """
  query GetUserConversations(
    $filter: ai_conversationsFilter
    $limit: Int = 50
    $offset: Int = 0
    $sorting: [ai_conversationsOrderBy!] = [{ last_message_at: DescNullsLast }]
  ) {
    ai_conversationsCollection(
      filter: $filter
      first: $limit
      offset: $offset
      orderBy: $sorting
    ) {
      edges {
        node {
          id
          user_id
          user_role
          title
          description
          metadata
          previous_response_id
          last_message_at
          created_at
        }
      }
    }
  }
"""

GET_AI_CONVERSATION_BY_ID = """
  query GetAIConversationById($id: UUID!) {
    ai_conversationsCollection(filter: { id: { eq: $id } }) {
      edges {
        node {
          id
          user_id
          user_role
          title
          description
          metadata
          previous_response_id
          last_message_at
          created_at
        }
      }
    }
  }
"""

# $set is built by the caller so that unset fields are not overwritten with null
UPDATE_AI_CONVERSATION = """
  mutation UpdateAIConversation($id: UUID!, $set: ai_conversationsUpdateInput!) {
    updateai_conversationsCollection(
      filter: { id: { eq: $id } }
      set: $set
    ) {
      affectedCount
      records {
        id
        title
        description
        previous_response_id
        last_message_at
      }
    }
  }
"""

INSERT_AI_MESSAGE = """
  mutation InsertAIMessage($objects: [ai_messagesInsertInput!]!) {
    insertIntoai_messagesCollection(objects: $objects) {
      affectedCount
      records {
        id
        conversation_id
        user_id
        role
        content
        provider_response_id
        metadata
        created_at
      }
    }
  }
"""

GET_CONVERSATION_MESSAGES = """
  query GetConversationMessages(
    $filter: ai_messagesFilter
    $limit: Int = 1000
    $offset: Int = 0
    $sorting: [ai_messagesOrderBy!] = [{ created_at: AscNullsLast }]
  ) {
    ai_messagesCollection(
      filter: $filter
      first: $limit
      offset: $offset
      orderBy: $sorting
    ) {
      edges {
        node {
          id
          conversation_id
          user_id
          role
          content
          provider_response_id
          metadata
          created_at
        }
      }
    }
  }
"""
